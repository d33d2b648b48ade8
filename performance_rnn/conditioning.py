"""Conditioning side-input for the performance model.

Every step the model receives, alongside the previous event, a vector
describing what it should be playing:

- a leading marker (``1`` means "ignore the rest", ``0`` means conditioned),
- a note-density one-hot over ``len(DENSITY_BIN_RANGES) + 1`` slots where
  slot 0 is reserved for "unconditioned",
- a 12-bin pitch-class histogram normalised to sum to one.

The width of this vector is fixed by the trained weights, so the neutral
"conditioning off" vector has exactly the same length as a real one.
"""

import typing

import numpy


class ConditioningError (ValueError):

	"""Raised when density or histogram inputs cannot be encoded."""


NOTES_PER_OCTAVE = 12

# Notes per second represented by each density bin.
DENSITY_BIN_RANGES: typing.Tuple[float, ...] = (1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 64.0)

PITCH_HISTOGRAM_SIZE = NOTES_PER_OCTAVE
DENSITY_ENCODING_SIZE = len(DENSITY_BIN_RANGES) + 1
CONDITIONING_SIZE = 1 + DENSITY_ENCODING_SIZE + PITCH_HISTOGRAM_SIZE

# Substituted for an all-zero histogram before it reaches the encoder.
FALLBACK_HISTOGRAM: typing.Tuple[int, ...] = (1,) + (0,) * (PITCH_HISTOGRAM_SIZE - 1)


def encode_density (density_index: int) -> numpy.ndarray:

	"""One-hot encode a density bin index, leaving slot 0 for 'unconditioned'."""

	if isinstance(density_index, bool) or not isinstance(density_index, int):
		raise ConditioningError(f"Density index must be an int, got {density_index!r}")

	if not 0 <= density_index < len(DENSITY_BIN_RANGES):
		raise ConditioningError(
			f"Density index {density_index} outside 0-{len(DENSITY_BIN_RANGES) - 1}"
		)

	encoding = numpy.zeros(DENSITY_ENCODING_SIZE, dtype=numpy.float32)
	encoding[density_index + 1] = 1.0

	return encoding


def validate_histogram (histogram: typing.Sequence[int]) -> typing.List[int]:

	"""Check a pitch histogram has twelve non-negative integer entries."""

	values = list(histogram)

	if len(values) != PITCH_HISTOGRAM_SIZE:
		raise ConditioningError(f"Pitch histogram needs {PITCH_HISTOGRAM_SIZE} entries, got {len(values)}")

	for value in values:
		if isinstance(value, bool) or not isinstance(value, (int, numpy.integer)):
			raise ConditioningError(f"Pitch histogram entries must be integers, got {value!r}")
		if value < 0:
			raise ConditioningError(f"Pitch histogram entries cannot be negative, got {value}")

	return [int(value) for value in values]


def guard_histogram (histogram: typing.Sequence[int]) -> typing.List[int]:

	"""
	Return the histogram, or the fallback when every bin is zero.

	This is applied wherever a histogram enters from outside (UI, OSC,
	MIDI input) so the encoder never sees a zero sum.
	"""

	values = validate_histogram(histogram)

	if sum(values) == 0:
		return list(FALLBACK_HISTOGRAM)

	return values


def encode_pitch_histogram (histogram: typing.Sequence[int]) -> numpy.ndarray:

	"""Normalise a pitch histogram so its entries sum to one."""

	values = validate_histogram(histogram)
	total = sum(values)

	if total == 0:
		raise ConditioningError("Pitch histogram cannot be all zero")

	return numpy.asarray(values, dtype=numpy.float32) / numpy.float32(total)


def unconditioned () -> numpy.ndarray:

	"""The neutral vector telling the model to ignore conditioning."""

	vector = numpy.zeros(CONDITIONING_SIZE, dtype=numpy.float32)
	vector[0] = 1.0

	return vector


def build_conditioning (density_index: int, histogram: typing.Sequence[int], enabled: bool) -> numpy.ndarray:

	"""
	Build the model's conditioning vector.

	When ``enabled`` is false the density and histogram are ignored entirely
	(and not validated) and the neutral one-hot-at-zero vector is returned.

	Parameters:
		density_index: Index into :data:`DENSITY_BIN_RANGES`.
		histogram: Twelve non-negative pitch-class counts, C first.
		enabled: Whether the model should follow the conditioning at all.

	Returns:
		A float32 vector of length :data:`CONDITIONING_SIZE`.
	"""

	if not enabled:
		return unconditioned()

	return numpy.concatenate((
		numpy.zeros(1, dtype=numpy.float32),
		encode_density(density_index),
		encode_pitch_histogram(histogram),
	))
