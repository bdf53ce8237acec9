"""Pure training engine: loads, set schemes, workouts, state and progressions."""

from .assembler import assemble_workout, next_fatigue_set
from .loads import LoadContext, calculate_load
from .progressions import ProgressionInput, apply_progression
from .rounding import round_weight
from .rpe_chart import DEFAULT_CHART, RpeChart
from .schemes import expand_scheme, fatigue_drop_sets, replay_fatigue_drop

__all__ = [
    "DEFAULT_CHART",
    "LoadContext",
    "ProgressionInput",
    "RpeChart",
    "apply_progression",
    "assemble_workout",
    "calculate_load",
    "expand_scheme",
    "fatigue_drop_sets",
    "next_fatigue_set",
    "replay_fatigue_drop",
    "round_weight",
]
