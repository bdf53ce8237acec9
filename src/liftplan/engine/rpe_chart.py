"""RPE chart: (reps, RPE) -> fraction of one-rep max.

Percentages fall as reps rise and climb with RPE.
"""

from ..errors import ValidationError

# RPE -> fraction of 1RM for 1..12 reps
_DEFAULT_ROWS = {
    7.0: (0.88, 0.82, 0.80, 0.74, 0.74, 0.68, 0.66, 0.64, 0.62, 0.60, 0.58, 0.56),
    7.5: (0.895, 0.85, 0.81, 0.77, 0.755, 0.695, 0.67, 0.65, 0.63, 0.61, 0.59, 0.57),
    8.0: (0.91, 0.88, 0.82, 0.80, 0.77, 0.71, 0.68, 0.66, 0.64, 0.62, 0.60, 0.58),
    8.5: (0.93, 0.895, 0.855, 0.81, 0.785, 0.725, 0.695, 0.67, 0.65, 0.63, 0.61, 0.59),
    9.0: (0.95, 0.91, 0.89, 0.82, 0.80, 0.74, 0.71, 0.68, 0.66, 0.64, 0.62, 0.60),
    9.5: (0.975, 0.93, 0.905, 0.85, 0.81, 0.77, 0.725, 0.695, 0.67, 0.65, 0.63, 0.61),
    10.0: (1.00, 0.95, 0.92, 0.88, 0.82, 0.80, 0.74, 0.71, 0.68, 0.66, 0.64, 0.62),
}


class RpeChart:
    """Lookup table from (reps, RPE) to a fraction of 1RM."""

    def __init__(self, entries: dict[tuple[int, float], float]):
        self._entries = dict(entries)

    @classmethod
    def default(cls) -> "RpeChart":
        """The standard chart covering 1-12 reps at RPE 7-10."""
        entries = {}
        for rpe, row in _DEFAULT_ROWS.items():
            for reps, fraction in enumerate(row, start=1):
                entries[(reps, rpe)] = fraction
        return cls(entries)

    def percentage(self, reps: int, rpe: float) -> float:
        """Fraction of 1RM (0-1) for a rep count at an RPE."""
        try:
            return self._entries[(reps, float(rpe))]
        except KeyError:
            raise ValidationError(
                f"no RPE chart entry for {reps} reps at RPE {rpe:g}"
            ) from None

    def has_entry(self, reps: int, rpe: float) -> bool:
        return (reps, float(rpe)) in self._entries


DEFAULT_CHART = RpeChart.default()
