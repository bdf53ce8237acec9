"""Program graph models: prescriptions, days, weeks, cycles and lookups."""

from dataclasses import dataclass, field
from enum import Enum

from ..errors import NotFoundError, ValidationError
from .load import LoadStrategy, load_strategy_from_dict
from .scheme import SetScheme, set_scheme_from_dict


class IntensityLevel(str, Enum):
    """Relative intensity of a training day."""

    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"


@dataclass(frozen=True)
class Prescription:
    """One lift on a day: how heavy (load) and how many (scheme)."""

    id: str
    lift_id: str
    load: LoadStrategy
    scheme: SetScheme
    order: int = 0
    notes: str = ""
    rest_seconds: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "lift_id": self.lift_id,
            "load": self.load.to_dict(),
            "scheme": self.scheme.to_dict(),
            "order": self.order,
            "notes": self.notes,
            "rest_seconds": self.rest_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Prescription":
        """Create from dictionary, validating the load and scheme."""
        return cls(
            id=data["id"],
            lift_id=data["lift_id"],
            load=load_strategy_from_dict(data["load"]),
            scheme=set_scheme_from_dict(data["scheme"]),
            order=data.get("order", 0),
            notes=data.get("notes", ""),
            rest_seconds=data.get("rest_seconds"),
        )


@dataclass
class Day:
    """A training day: an ordered list of prescriptions."""

    name: str
    slug: str
    prescriptions: list[Prescription] = field(default_factory=list)

    def ordered_prescriptions(self) -> list[Prescription]:
        """Prescriptions sorted by their order index."""
        return sorted(self.prescriptions, key=lambda p: p.order)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "slug": self.slug,
            "prescriptions": [p.to_dict() for p in self.prescriptions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Day":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            slug=data["slug"],
            prescriptions=[Prescription.from_dict(p) for p in data.get("prescriptions", [])],
        )


@dataclass(frozen=True)
class WeekSlot:
    """A calendar slot in a week pointing at a day by slug."""

    day_of_week: str
    day_slug: str


@dataclass
class Week:
    """A week of the cycle. The same day may fill more than one slot."""

    week_number: int
    slots: list[WeekSlot] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "week_number": self.week_number,
            "slots": [
                {"day_of_week": s.day_of_week, "day_slug": s.day_slug}
                for s in self.slots
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Week":
        """Create from dictionary."""
        return cls(
            week_number=data["week_number"],
            slots=[
                WeekSlot(day_of_week=s.get("day_of_week", ""), day_slug=s["day_slug"])
                for s in data.get("slots", [])
            ],
        )


@dataclass
class Cycle:
    """An ordered, repeatable sequence of weeks."""

    name: str
    length_weeks: int
    weeks: list[Week] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "length_weeks": self.length_weeks,
            "weeks": [w.to_dict() for w in self.weeks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cycle":
        """Create from dictionary."""
        weeks = [Week.from_dict(w) for w in data.get("weeks", [])]
        return cls(
            name=data.get("name", ""),
            length_weeks=data.get("length_weeks") or len(weeks),
            weeks=weeks,
        )


@dataclass(frozen=True)
class WeeklyLookupEntry:
    """Per-week percentages, reps and modifier."""

    week_number: int
    percentages: tuple[float, ...] = ()
    reps: tuple[int, ...] = ()
    percentage_modifier: float | None = None


@dataclass
class WeeklyLookup:
    """Week number -> lookup entry."""

    entries: dict[int, WeeklyLookupEntry] = field(default_factory=dict)

    def get(self, week_number: int) -> WeeklyLookupEntry | None:
        return self.entries.get(week_number)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "entries": [
                {
                    "week_number": e.week_number,
                    "percentages": list(e.percentages),
                    "reps": list(e.reps),
                    "percentage_modifier": e.percentage_modifier,
                }
                for e in self.entries.values()
            ]
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WeeklyLookup":
        """Create from dictionary."""
        entries = {}
        for e in data.get("entries", []):
            entry = WeeklyLookupEntry(
                week_number=e["week_number"],
                percentages=tuple(float(p) for p in e.get("percentages", [])),
                reps=tuple(int(r) for r in e.get("reps", [])),
                percentage_modifier=e.get("percentage_modifier"),
            )
            entries[entry.week_number] = entry
        return cls(entries=entries)


@dataclass(frozen=True)
class DailyLookupEntry:
    """Per-day intensity modifier, e.g. a light day at 90%."""

    day_identifier: str
    percentage_modifier: float
    intensity_level: IntensityLevel | None = None


@dataclass
class DailyLookup:
    """Day identifier -> lookup entry."""

    entries: dict[str, DailyLookupEntry] = field(default_factory=dict)

    def get(self, day_identifier: str) -> DailyLookupEntry | None:
        return self.entries.get(day_identifier)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "entries": [
                {
                    "day_identifier": e.day_identifier,
                    "percentage_modifier": e.percentage_modifier,
                    "intensity_level": e.intensity_level.value if e.intensity_level else None,
                }
                for e in self.entries.values()
            ]
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailyLookup":
        """Create from dictionary."""
        entries = {}
        for e in data.get("entries", []):
            level = e.get("intensity_level")
            entry = DailyLookupEntry(
                day_identifier=e["day_identifier"],
                percentage_modifier=float(e["percentage_modifier"]),
                intensity_level=IntensityLevel(level) if level else None,
            )
            entries[entry.day_identifier] = entry
        return cls(entries=entries)


@dataclass(frozen=True)
class ProgressionLink:
    """Attaches a progression to a program, optionally for one lift only.

    A link without a lift applies to every lift the program uses.
    """

    progression_id: str
    lift_id: str | None = None
    priority: int = 0
    enabled: bool = True
    override_increment: float | None = None

    def applies_to(self, lift_id: str) -> bool:
        return self.enabled and (self.lift_id is None or self.lift_id == lift_id)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "progression_id": self.progression_id,
            "lift_id": self.lift_id,
            "priority": self.priority,
            "enabled": self.enabled,
            "override_increment": self.override_increment,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProgressionLink":
        """Create from dictionary."""
        return cls(
            progression_id=data["progression_id"],
            lift_id=data.get("lift_id"),
            priority=data.get("priority", 0),
            enabled=data.get("enabled", True),
            override_increment=data.get("override_increment"),
        )


@dataclass
class Program:
    """A complete program graph.

    Days are stored once and referenced from week slots by slug.
    """

    id: str
    name: str
    slug: str
    cycle: Cycle
    days: list[Day] = field(default_factory=list)
    weekly_lookup: WeeklyLookup | None = None
    daily_lookup: DailyLookup | None = None
    progression_links: list[ProgressionLink] = field(default_factory=list)
    description: str = ""

    def get_week(self, week_number: int) -> Week:
        """Get the week for a week number."""
        for week in self.cycle.weeks:
            if week.week_number == week_number:
                return week
        raise NotFoundError(f"program {self.slug} has no week {week_number}")

    def get_day(self, slug: str) -> Day:
        """Get a day by slug."""
        for day in self.days:
            if day.slug == slug:
                return day
        raise NotFoundError(f"program {self.slug} has no day {slug!r}")

    def day_for(self, week_number: int, day_index: int) -> Day:
        """Resolve the scheduled day at a position in the calendar."""
        week = self.get_week(week_number)
        if not 0 <= day_index < len(week.slots):
            raise NotFoundError(
                f"week {week_number} of program {self.slug} has no day {day_index}"
            )
        return self.get_day(week.slots[day_index].day_slug)

    def days_in_week(self, week_number: int) -> int:
        """Number of scheduled slots in a week."""
        return len(self.get_week(week_number).slots)

    def find_prescription(self, prescription_id: str) -> Prescription:
        """Find a prescription anywhere in the program."""
        for day in self.days:
            for prescription in day.prescriptions:
                if prescription.id == prescription_id:
                    return prescription
        raise NotFoundError(f"prescription {prescription_id!r} not found")

    def lift_ids(self) -> list[str]:
        """All lifts prescribed anywhere in the program, in first-seen order."""
        seen: list[str] = []
        for day in self.days:
            for prescription in day.ordered_prescriptions():
                if prescription.lift_id not in seen:
                    seen.append(prescription.lift_id)
        return seen

    def links_for(self, lift_id: str) -> list[ProgressionLink]:
        """Enabled links that apply to a lift, in priority order."""
        links = [link for link in self.progression_links if link.applies_to(lift_id)]
        return sorted(links, key=lambda link: link.priority)

    def validate(self) -> None:
        """Check that every week slot points at a known day."""
        if self.cycle.length_weeks < 1:
            raise ValidationError("cycle length_weeks must be at least 1")
        slugs = {day.slug for day in self.days}
        for week in self.cycle.weeks:
            for slot in week.slots:
                if slot.day_slug not in slugs:
                    raise ValidationError(
                        f"week {week.week_number} references unknown day {slot.day_slug!r}"
                    )

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "cycle": self.cycle.to_dict(),
            "days": [d.to_dict() for d in self.days],
            "weekly_lookup": self.weekly_lookup.to_dict() if self.weekly_lookup else None,
            "daily_lookup": self.daily_lookup.to_dict() if self.daily_lookup else None,
            "progression_links": [link.to_dict() for link in self.progression_links],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Program":
        """Create from dictionary."""
        weekly = data.get("weekly_lookup")
        daily = data.get("daily_lookup")
        return cls(
            id=data["id"],
            name=data["name"],
            slug=data.get("slug", data["id"]),
            description=data.get("description", ""),
            cycle=Cycle.from_dict(data["cycle"]),
            days=[Day.from_dict(d) for d in data.get("days", [])],
            weekly_lookup=WeeklyLookup.from_dict(weekly) if weekly else None,
            daily_lookup=DailyLookup.from_dict(daily) if daily else None,
            progression_links=[
                ProgressionLink.from_dict(link) for link in data.get("progression_links", [])
            ],
        )
