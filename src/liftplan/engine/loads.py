"""Load calculator: resolve a load strategy against a user's maxes."""

import logging
from dataclasses import dataclass, field, replace
from typing import Mapping

from ..errors import ValidationError
from ..models.lift import MaxType
from ..models.load import WEEK_LOOKUP_KEY, LoadStrategy, PercentOf, RpeTarget
from ..models.program import DailyLookup, WeeklyLookupEntry
from .rounding import round_weight
from .rpe_chart import DEFAULT_CHART, RpeChart

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadContext:
    """Everything a load strategy may read for one lift on one day.

    ``set_number`` is one-based; zero means "not set-specific".
    """

    lift_id: str
    maxes: Mapping[MaxType, float]
    weekly_entry: WeeklyLookupEntry | None = None
    daily_lookup: DailyLookup | None = None
    day_slug: str | None = None
    set_number: int = 0
    chart: RpeChart = field(default=DEFAULT_CHART, compare=False)

    def for_set(self, set_number: int) -> "LoadContext":
        return replace(self, set_number=set_number)

    def reference_max(self, max_type: MaxType) -> float:
        value = self.maxes.get(max_type)
        if value is None:
            raise ValidationError(
                f"no {max_type.value} recorded for lift {self.lift_id}"
            )
        return value


def daily_modifier(strategy: LoadStrategy, ctx: LoadContext) -> float:
    """The daily lookup multiplier (1.0 when none applies)."""
    if ctx.daily_lookup is None:
        return 1.0

    day_key = ctx.day_slug
    if isinstance(strategy, PercentOf) and strategy.lookup_key not in (None, WEEK_LOOKUP_KEY):
        day_key = strategy.lookup_key
    if day_key is None:
        return 1.0

    entry = ctx.daily_lookup.get(day_key)
    if entry is None or not entry.percentage_modifier:
        return 1.0
    return entry.percentage_modifier / 100


def effective_percentage(strategy: PercentOf, ctx: LoadContext) -> float:
    """Percentage of the reference max after weekly and daily lookups."""
    percentage = strategy.percentage
    weekly = ctx.weekly_entry

    if strategy.lookup_key == WEEK_LOOKUP_KEY:
        if weekly is not None and weekly.percentages and ctx.set_number > 0:
            index = min(ctx.set_number, len(weekly.percentages)) - 1
            percentage = weekly.percentages[index]
    elif weekly is not None and weekly.percentage_modifier:
        percentage = percentage * weekly.percentage_modifier / 100

    return percentage * daily_modifier(strategy, ctx)


def resolve_load(strategy: LoadStrategy, ctx: LoadContext) -> float:
    """Unrounded weight for a strategy."""
    if isinstance(strategy, PercentOf):
        reference = ctx.reference_max(strategy.reference_type)
        return reference * effective_percentage(strategy, ctx) / 100
    if isinstance(strategy, RpeTarget):
        one_rm = ctx.reference_max(MaxType.ONE_RM)
        return one_rm * ctx.chart.percentage(strategy.target_reps, strategy.target_rpe)
    raise ValidationError(f"unsupported load strategy: {type(strategy).__name__}")


def round_for(strategy: LoadStrategy, weight: float) -> float:
    """Apply the strategy's rounding, if it has any."""
    if isinstance(strategy, PercentOf):
        if strategy.rounding_increment is None:
            return weight
        return round_weight(weight, strategy.rounding_increment, strategy.rounding_direction)
    return round_weight(weight, strategy.rounding_increment, strategy.rounding_direction)


def calculate_load(strategy: LoadStrategy, ctx: LoadContext) -> float:
    """Resolve a strategy to the weight shown to the user.

    Raises:
        ValidationError: if the referenced max is missing or the RPE
            chart has no entry for the target
    """
    weight = round_for(strategy, resolve_load(strategy, ctx))
    logger.debug(
        "Load for %s set %s via %s: %s", ctx.lift_id, ctx.set_number, strategy.type.value, weight
    )
    return weight


def lookup_reps(strategy: LoadStrategy, ctx: LoadContext, default: int) -> int:
    """Reps for ``ctx.set_number`` from the weekly lookup, else ``default``."""
    if not isinstance(strategy, PercentOf) or strategy.lookup_key != WEEK_LOOKUP_KEY:
        return default
    weekly = ctx.weekly_entry
    if weekly is None or not weekly.reps or ctx.set_number < 1:
        return default
    return weekly.reps[min(ctx.set_number, len(weekly.reps)) - 1]
