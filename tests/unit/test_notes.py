"""
Tests for mathemelody.playback.notes
"""

import pytest

from mathemelody.playback.notes import SCALE_FREQUENCIES, frequency_for, note_index, round_half_up


@pytest.mark.unit
class TestNoteMapping:
    def test_scale_is_one_octave_from_middle_c(self):
        assert len(SCALE_FREQUENCIES) == 8
        assert SCALE_FREQUENCIES[0] == 261.63
        assert SCALE_FREQUENCIES[-1] == 523.25
        assert list(SCALE_FREQUENCIES) == sorted(SCALE_FREQUENCIES)

    @pytest.mark.parametrize(
        "magnitude, expected",
        [(0, 0), (3, 3), (7, 7), (8, 0), (25, 1), (1.0, 1), (0.49, 0), (6.6, 7)],
    )
    def test_note_index(self, magnitude, expected):
        assert note_index(magnitude) == expected

    def test_halves_round_up(self):
        # Browser Math.round semantics, not banker's rounding
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert note_index(2.5) == 3
        assert note_index(7.5) == 0

    def test_negative_magnitude_rejected(self):
        with pytest.raises(ValueError):
            note_index(-1)

    def test_frequency_for(self):
        assert frequency_for(5) == 440.0
        assert frequency_for(9) == 293.66
