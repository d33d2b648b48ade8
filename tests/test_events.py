import numpy
import pytest

import performance_rnn.events

from performance_rnn.events import NoteOff, NoteOn, TimeShift, VelocityChange


@pytest.mark.parametrize("index, expected", [
	(0, NoteOn(0)),
	(127, NoteOn(127)),
	(128, NoteOff(0)),
	(255, NoteOff(127)),
	(256, TimeShift(1)),
	(355, TimeShift(100)),
	(356, VelocityChange(1)),
	(387, VelocityChange(32)),
])
def test_decode_range_boundaries (index: int, expected: performance_rnn.events.Event) -> None:

	"""Each range starts and ends at its cumulative offset."""

	assert performance_rnn.events.decode(index) == expected
	assert performance_rnn.events.encode(expected) == index


def test_vocabulary_size () -> None:

	"""Two pitch ranges, the shifts and the velocity buckets."""

	assert performance_rnn.events.EVENT_SIZE == 128 + 128 + 100 + 32 == 388


def test_round_trip_every_index () -> None:

	"""encode(decode(i)) is the identity over the whole vocabulary."""

	for index in range(performance_rnn.events.EVENT_SIZE):
		event = performance_rnn.events.decode(index)
		assert performance_rnn.events.encode(event) == index
		assert performance_rnn.events.decode(performance_rnn.events.encode(event)) == event


@pytest.mark.parametrize("index", [-1, 388, 1000, -388])
def test_decode_out_of_range_raises (index: int) -> None:

	"""Indices outside every range are decode errors."""

	with pytest.raises(performance_rnn.events.InvalidIndex):
		performance_rnn.events.decode(index)


@pytest.mark.parametrize("index", ["3", 1.5, None, True])
def test_decode_rejects_non_integers (index: object) -> None:

	"""Only integers are valid indices."""

	with pytest.raises(performance_rnn.events.InvalidIndex):
		performance_rnn.events.decode(index)  # type: ignore[arg-type]


def test_decode_accepts_numpy_integers () -> None:

	"""Sampled indices may arrive as numpy integer scalars."""

	assert performance_rnn.events.decode(numpy.int64(60)) == NoteOn(60)


def test_invalid_index_is_value_error () -> None:

	"""Callers catching ValueError also catch decode errors."""

	assert issubclass(performance_rnn.events.InvalidIndex, ValueError)


@pytest.mark.parametrize("factory, value", [
	(NoteOn, 128),
	(NoteOff, -1),
	(TimeShift, 0),
	(TimeShift, 101),
	(VelocityChange, 0),
	(VelocityChange, 33),
])
def test_event_values_are_validated (factory: type, value: int) -> None:

	"""Events cannot be built outside their declared range."""

	with pytest.raises(ValueError):
		factory(value)


def test_time_shift_seconds () -> None:

	"""One step is a hundredth of a second."""

	assert TimeShift(50).seconds == pytest.approx(0.5)
	assert TimeShift(100).seconds == pytest.approx(1.0)


def test_primer_is_one_second_shift () -> None:

	"""The primer input is the longest time shift."""

	assert performance_rnn.events.decode(performance_rnn.events.PRIMER_INDEX) == TimeShift(100)


def test_encode_rejects_non_events () -> None:

	"""encode only accepts the four event types."""

	with pytest.raises(TypeError):
		performance_rnn.events.encode(60)  # type: ignore[arg-type]
