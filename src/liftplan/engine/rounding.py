"""Snap computed weights to loadable increments."""

import math

from ..errors import ValidationError
from ..models.load import DEFAULT_ROUNDING_INCREMENT, RoundingDirection


def round_weight(
    weight: float,
    increment: float = DEFAULT_ROUNDING_INCREMENT,
    direction: RoundingDirection = RoundingDirection.NEAREST,
) -> float:
    """Round a weight to a multiple of ``increment``.

    Args:
        weight: The raw weight, must not be negative
        increment: The plate increment, must be positive
        direction: NEAREST, UP or DOWN

    Returns:
        The rounded weight
    """
    if weight < 0:
        raise ValidationError(f"weight cannot be negative: {weight}")
    if increment <= 0:
        raise ValidationError(f"rounding increment must be positive: {increment}")
    if weight == 0:
        return 0.0

    # Trim float noise so 99.99999... does not floor to the step below
    steps = round(weight / increment, 9)
    if direction == RoundingDirection.DOWN:
        steps = math.floor(steps)
    elif direction == RoundingDirection.UP:
        steps = math.ceil(steps)
    else:
        # Half rounds up, unlike round()'s banker's rounding
        steps = math.floor(steps + 0.5)
    return steps * increment
