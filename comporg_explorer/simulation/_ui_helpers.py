"""Small UI helper functions shared by the runner and the UI class.
"""

MIN_ANIM_SPEED = 200
MAX_ANIM_SPEED = 2000
ANIM_SPEED_STEP = 100
DEFAULT_ANIM_SPEED = 1000


def clamp_speed(ms) -> int:
    """Clamp an animation delay (milliseconds) to the slider range."""
    try:
        ms = int(ms)
    except (TypeError, ValueError):
        return DEFAULT_ANIM_SPEED
    if ms < MIN_ANIM_SPEED:
        return MIN_ANIM_SPEED
    if ms > MAX_ANIM_SPEED:
        return MAX_ANIM_SPEED
    return ms
