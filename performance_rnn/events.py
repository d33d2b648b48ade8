"""The discrete performance event vocabulary.

The model reads and writes one event per step, as an index into a flat
vocabulary built by concatenating four value ranges in a fixed order:

====================  ==========  =============
Range                 Values      Indices
====================  ==========  =============
``note_on``           0 - 127     0 - 127
``note_off``          0 - 127     128 - 255
``time_shift``        1 - 100     256 - 355
``velocity_change``   1 - 32      356 - 387
====================  ==========  =============

The order is part of the contract with the trained weights - changing it
silently scrambles every prediction.
"""

import dataclasses
import typing

import performance_rnn.constants.timing
import performance_rnn.constants.velocity


class InvalidIndex (ValueError):

	"""Raised when an index does not fall inside any declared event range."""


@dataclasses.dataclass (frozen=True)
class NoteOn:

	"""Start sounding a pitch."""

	pitch: int

	def __post_init__ (self) -> None:
		_check_value("pitch", self.pitch, performance_rnn.constants.velocity.MIN_MIDI_PITCH, performance_rnn.constants.velocity.MAX_MIDI_PITCH)


@dataclasses.dataclass (frozen=True)
class NoteOff:

	"""Stop sounding a pitch."""

	pitch: int

	def __post_init__ (self) -> None:
		_check_value("pitch", self.pitch, performance_rnn.constants.velocity.MIN_MIDI_PITCH, performance_rnn.constants.velocity.MAX_MIDI_PITCH)


@dataclasses.dataclass (frozen=True)
class TimeShift:

	"""Advance piano time by a number of 10 ms steps."""

	steps: int

	def __post_init__ (self) -> None:
		_check_value("steps", self.steps, 1, performance_rnn.constants.timing.MAX_SHIFT_STEPS)

	@property
	def seconds (self) -> float:

		"""The shift length in seconds."""

		return self.steps / performance_rnn.constants.timing.STEPS_PER_SECOND


@dataclasses.dataclass (frozen=True)
class VelocityChange:

	"""Select the velocity bucket for subsequent note-ons."""

	bucket: int

	def __post_init__ (self) -> None:
		_check_value("bucket", self.bucket, 1, performance_rnn.constants.velocity.VELOCITY_BINS)


Event = typing.Union[NoteOn, NoteOff, TimeShift, VelocityChange]


def _check_value (name: str, value: int, min_value: int, max_value: int) -> None:

	"""Reject values outside an event's declared range."""

	if isinstance(value, bool) or not isinstance(value, int):
		raise ValueError(f"Event {name} must be an int, got {value!r}")

	if not min_value <= value <= max_value:
		raise ValueError(f"Event {name} {value} outside range {min_value}-{max_value}")


@dataclasses.dataclass (frozen=True)
class EventRange:

	"""One contiguous block of the vocabulary."""

	name: str
	event_type: typing.Type[typing.Any]
	min_value: int
	max_value: int

	@property
	def size (self) -> int:
		return self.max_value - self.min_value + 1


EVENT_RANGES: typing.Tuple[EventRange, ...] = (
	EventRange("note_on", NoteOn, performance_rnn.constants.velocity.MIN_MIDI_PITCH, performance_rnn.constants.velocity.MAX_MIDI_PITCH),
	EventRange("note_off", NoteOff, performance_rnn.constants.velocity.MIN_MIDI_PITCH, performance_rnn.constants.velocity.MAX_MIDI_PITCH),
	EventRange("time_shift", TimeShift, 1, performance_rnn.constants.timing.MAX_SHIFT_STEPS),
	EventRange("velocity_change", VelocityChange, 1, performance_rnn.constants.velocity.VELOCITY_BINS),
)


def _build_offsets (ranges: typing.Sequence[EventRange]) -> typing.Dict[typing.Type[typing.Any], typing.Tuple[int, EventRange]]:

	"""Map each event type to the cumulative offset of its range."""

	offsets: typing.Dict[typing.Type[typing.Any], typing.Tuple[int, EventRange]] = {}
	offset = 0

	for event_range in ranges:

		if event_range.size <= 0:
			raise ValueError(f"Event range {event_range.name!r} is empty")

		if event_range.event_type in offsets:
			raise ValueError(f"Event type {event_range.event_type.__name__} declared twice")

		offsets[event_range.event_type] = (offset, event_range)
		offset += event_range.size

	return offsets


_OFFSETS = _build_offsets(EVENT_RANGES)

EVENT_SIZE: int = sum(event_range.size for event_range in EVENT_RANGES)

# Shift by one full second.  Fed to the model as the first input after a reset.
PRIMER_INDEX = 355


def _event_value (event: Event) -> int:

	if isinstance(event, (NoteOn, NoteOff)):
		return event.pitch

	if isinstance(event, TimeShift):
		return event.steps

	return event.bucket


def encode (event: Event) -> int:

	"""Return the vocabulary index of an event."""

	if type(event) not in _OFFSETS:
		raise TypeError(f"Not a performance event: {event!r}")

	offset, event_range = _OFFSETS[type(event)]

	return offset + _event_value(event) - event_range.min_value


def decode (index: int) -> Event:

	"""
	Return the event for a vocabulary index.

	Walks the ranges in declared order, accumulating offsets until the range
	containing ``index`` is found.  Raises :class:`InvalidIndex` for anything
	outside ``[0, EVENT_SIZE)``.
	"""

	if isinstance(index, bool):
		raise InvalidIndex(f"Event index must be an integer, got {index!r}")

	# numpy integer scalars come straight out of the sampler.
	if not isinstance(index, int):
		try:
			index = int(index.__index__())  # type: ignore[union-attr]
		except (AttributeError, TypeError):
			raise InvalidIndex(f"Event index must be an integer, got {index!r}") from None

	offset = 0

	for event_range in EVENT_RANGES:

		if offset <= index < offset + event_range.size:
			value = index - offset + event_range.min_value
			return typing.cast(Event, event_range.event_type(value))

		offset += event_range.size

	raise InvalidIndex(f"Could not decode index: {index}")
