"""Pitch histogram presets for conditioning.

Ready-made 12-bin pitch-class histograms that steer the model toward a key,
a triad within that key, or a symmetric scale.  All results are plain lists
of non-negative integers (C first) suitable for
:meth:`performance_rnn.session.PerformanceSession.set_pitch_histogram`.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g., `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `MAJOR_HISTOGRAM`, `MINOR_HISTOGRAM`: Scale weights rooted on C, tonic doubled
- `WHOLE_TONE_HISTOGRAM`, `PENTATONIC_HISTOGRAM`: Symmetric presets
"""

import typing


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

MAJOR_HISTOGRAM: typing.Tuple[int, ...] = (2, 0, 1, 0, 1, 1, 0, 1, 0, 1, 0, 1)
MINOR_HISTOGRAM: typing.Tuple[int, ...] = (2, 0, 1, 1, 0, 1, 0, 1, 1, 0, 0, 1)

WHOLE_TONE_HISTOGRAM: typing.Tuple[int, ...] = (1, 0, 1, 0, 1, 0, 1, 0, 1, 0, 1, 0)
PENTATONIC_HISTOGRAM: typing.Tuple[int, ...] = (0, 1, 0, 1, 0, 0, 1, 0, 1, 0, 1, 0)

SCALE_DEGREES = 7

MODES: typing.Dict[str, typing.Tuple[int, ...]] = {
	"major": MAJOR_HISTOGRAM,
	"minor": MINOR_HISTOGRAM,
}


def key_name_to_pc (key_name: str) -> int:

	"""Validate a key name and return its pitch class (0–11).

	Raises:
		ValueError: If the key name is not recognised.
	"""

	if key_name not in NOTE_NAME_TO_PC:
		raise ValueError(
			f"Unknown key name: {key_name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[key_name]


def _mode_histogram (mode: str) -> typing.Tuple[int, ...]:

	if mode not in MODES:
		raise ValueError(f"Unknown mode: {mode!r}. Expected one of {sorted(MODES)}")

	return MODES[mode]


def rotate (histogram: typing.Sequence[int], semitones: int) -> typing.List[int]:

	"""Transpose a histogram up by a number of semitones."""

	values = list(histogram)
	offset = semitones % len(values)

	return values[len(values) - offset:] + values[:len(values) - offset]


def key_histogram (key: str, mode: str = "major") -> typing.List[int]:

	"""
	Histogram for a major or minor key.

	Example:
		```python
		key_histogram("G")           # → [1, 0, 1, 0, 1, 0, 1, 2, 0, 1, 0, 1]
		key_histogram("A", "minor")
		```
	"""

	return rotate(_mode_histogram(mode), key_name_to_pc(key))


def chord_histogram (key: str, degree: int, mode: str = "major") -> typing.List[int]:

	"""
	Histogram for the diatonic triad built on a scale degree.

	Degrees count from 1 (the tonic) to 7; the third and fifth wrap around
	the scale, so degree 6 in C major gives A, C and E.
	"""

	if not 1 <= degree <= SCALE_DEGREES:
		raise ValueError(f"Scale degree must be 1-{SCALE_DEGREES}, got {degree}")

	scale = _mode_histogram(mode)
	chord_degrees = {
		(degree - 1 + step) % SCALE_DEGREES + 1
		for step in (0, 2, 4)
	}

	chord = [0] * len(scale)
	degrees_seen = 0

	for pc, weight in enumerate(scale):
		if weight > 0:
			degrees_seen += 1
			if degrees_seen in chord_degrees:
				chord[pc] = 1

	return rotate(chord, key_name_to_pc(key))
