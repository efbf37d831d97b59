"""
Magnitude to note mapping.

A magnitude is rounded, wrapped onto an 8-entry C-major scale starting at
middle C, and looked up as a frequency.
"""

import math

# C4 D4 E4 F4 G4 A4 B4 C5
SCALE_FREQUENCIES = (261.63, 293.66, 329.63, 349.23, 392.00, 440.00, 493.88, 523.25)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity.

    Matches the browser's ``Math.round``: 2.5 -> 3, whereas the builtin
    ``round`` gives 2.
    """
    return math.floor(value + 0.5)


def note_index(magnitude: float) -> int:
    """Scale position for a non-negative magnitude."""
    if magnitude < 0 or math.isnan(magnitude):
        raise ValueError(f"magnitude must be non-negative, got {magnitude}")
    return round_half_up(magnitude) % len(SCALE_FREQUENCIES)


def frequency_for(magnitude: float) -> float:
    return SCALE_FREQUENCIES[note_index(magnitude)]
