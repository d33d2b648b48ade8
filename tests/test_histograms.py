import pytest

import performance_rnn.histograms


def _pcs (histogram: list) -> set:

	return {pc for pc, weight in enumerate(histogram) if weight > 0}


def test_c_major_is_unrotated () -> None:

	"""C major is the base histogram."""

	assert performance_rnn.histograms.key_histogram("C") == list(performance_rnn.histograms.MAJOR_HISTOGRAM)


def test_key_rotation_moves_tonic () -> None:

	"""The doubled tonic follows the key."""

	g_major = performance_rnn.histograms.key_histogram("G")

	assert g_major == [1, 0, 1, 0, 1, 0, 1, 2, 0, 1, 0, 1]
	assert g_major.index(2) == 7


def test_flat_and_sharp_names_agree () -> None:

	assert performance_rnn.histograms.key_histogram("Bb", "minor") == performance_rnn.histograms.key_histogram("A#", "minor")


def test_a_minor_pitch_classes () -> None:

	"""The minor histogram is harmonic minor: A B C D E F G#."""

	assert _pcs(performance_rnn.histograms.key_histogram("A", "minor")) == {9, 11, 0, 2, 4, 5, 8}


@pytest.mark.parametrize("degree, expected", [
	(1, {0, 4, 7}),    # C E G
	(2, {2, 5, 9}),    # D F A
	(5, {7, 11, 2}),   # G B D
	(6, {9, 0, 4}),    # A C E
	(7, {11, 2, 5}),   # B D F
])
def test_chord_histograms_in_c (degree: int, expected: set) -> None:

	"""Triads wrap around the scale."""

	chord = performance_rnn.histograms.chord_histogram("C", degree)

	assert _pcs(chord) == expected
	assert sum(chord) == 3


def test_chord_histogram_transposes () -> None:

	"""The tonic triad of D major is D F# A."""

	assert _pcs(performance_rnn.histograms.chord_histogram("D", 1)) == {2, 6, 9}


def test_rotate_wraps () -> None:

	assert performance_rnn.histograms.rotate([1, 2, 3], 1) == [3, 1, 2]
	assert performance_rnn.histograms.rotate([1, 2, 3], 3) == [1, 2, 3]


@pytest.mark.parametrize("call", [
	lambda: performance_rnn.histograms.key_histogram("H"),
	lambda: performance_rnn.histograms.key_histogram("C", "lydian"),
	lambda: performance_rnn.histograms.chord_histogram("C", 0),
	lambda: performance_rnn.histograms.chord_histogram("C", 8),
])
def test_invalid_inputs_raise (call: object) -> None:

	with pytest.raises(ValueError):
		call()  # type: ignore[operator]
