"""
Rotation planning for the wheel renderer.

Angles are degrees in the renderer's drawing frame. The pointer sits at
``DEFAULT_POINTER_ANGLE`` (top of the circle in SVG space); changing it
requires the renderer to move its pointer too.
"""

DEFAULT_POINTER_ANGLE = 270.0
DEFAULT_FULL_SPINS = 6


def segment_center(index, segment_count):
    width = 360.0 / segment_count
    return index * width + width / 2


def target_offset(index, segment_count, pointer_angle=DEFAULT_POINTER_ANGLE):
    """Rotation in [0, 360) that brings segment ``index`` under the pointer"""
    return ((pointer_angle - segment_center(index, segment_count)) % 360 + 360) % 360


def plan_rotation(index, segment_count, current_rotation,
                  full_spins=DEFAULT_FULL_SPINS, pointer_angle=DEFAULT_POINTER_ANGLE):
    """
    Return the new accumulated rotation landing segment ``index`` under the pointer.

    The result is always greater than ``current_rotation`` and congruent to
    ``target_offset`` modulo 360.
    """
    if segment_count < 1:
        raise ValueError("segment_count must be at least 1")
    if not 0 <= index < segment_count:
        raise ValueError(f"index must be in [0, {segment_count}), got {index}")
    if full_spins < 1:
        raise ValueError("full_spins must be at least 1")
    if current_rotation < 0:
        raise ValueError("current_rotation must not be negative")

    offset = target_offset(index, segment_count, pointer_angle)
    return current_rotation + full_spins * 360 + offset - (current_rotation % 360)
