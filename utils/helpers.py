"""
Helper utilities for the playback coordinator.

Contains the small numeric helpers shared by the mixer, the fade
scheduler and the volume settings.
"""


def clamp01(value: float) -> float:
    """Clamp a value to the 0.0-1.0 range.

    Args:
        value: Any float

    Returns:
        The value limited to 0.0-1.0
    """
    return max(0.0, min(1.0, value))


def lerp(start: float, end: float, t: float) -> float:
    """Linear interpolation between two values.

    Args:
        start: Value at t=0
        end: Value at t=1
        t: Progress (clamped to 0.0-1.0)

    Returns:
        Interpolated value
    """
    t = clamp01(t)
    return start + (end - start) * t


def format_volume(volume: float) -> str:
    """Format a volume as a whole percentage (e.g. '70%')."""
    return f"{int(round(volume * 100))}%"
