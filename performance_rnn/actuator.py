"""Apply decoded events to the piano clock, the active notes and the outputs.

:class:`EventActuator` is where a sampled event stops being an index and
becomes sound.  It owns the two pieces of performance state that events
mutate directly:

- the :class:`VirtualClock` ("piano time"), which only ``TimeShift`` moves,
- the active note set, mapping each sounding pitch to the piano time it
  started.

Note lifetime rules:

- A note-off for a pitch that is not sounding is ignored.  The model emits
  these legitimately and they are not errors.
- A note-off never lands sooner than ``min_note_duration`` after its
  note-on, so very short notes are still audible.
- After every time shift, any note sounding longer than
  ``max_note_duration`` is released without waiting for the model.
"""

import logging
import math
import typing

import performance_rnn.constants.timing
import performance_rnn.constants.velocity
import performance_rnn.event_emitter
import performance_rnn.events
import performance_rnn.midi_utils
import performance_rnn.sinks


logger = logging.getLogger(__name__)


VELOCITY_BUCKET_SIZE = math.ceil((performance_rnn.constants.velocity.MAX_VELOCITY) / performance_rnn.constants.velocity.VELOCITY_BINS)


class VirtualClock:

	"""
	Piano time in seconds, plus its mapping to ``time.perf_counter``.

	Piano time is on the audio sink's clock.  ``anchor`` records the offset
	between that clock and the wall clock so timestamps for external MIDI
	devices can be derived from piano time.
	"""

	def __init__ (self) -> None:

		self.time: float = 0.0
		self.wall_offset: float = 0.0


	def anchor (self, now: float, wall_now: float) -> None:

		"""Restart piano time at the sink's ``now`` reading."""

		self.time = now
		self.wall_offset = wall_now - now


	def advance (self, seconds: float) -> None:

		if seconds < 0:
			raise ValueError("Piano time cannot move backwards")

		self.time += seconds


	def snap (self, now: float) -> float:

		"""Jump forward to ``now``, dropping the backlog.  Returns the jump size."""

		jump = now - self.time
		self.time = now

		return jump


	def to_wall_time (self, piano_time: float) -> float:

		return piano_time + self.wall_offset


class EventActuator:

	"""Turns performance events into sink calls, MIDI messages and note bookkeeping."""

	def __init__ (
		self,
		sink: performance_rnn.sinks.AudioSink,
		midi_out: typing.Optional[performance_rnn.midi_utils.MidiOutput] = None,
		events: typing.Optional[performance_rnn.event_emitter.EventEmitter] = None,
		clock: typing.Optional[VirtualClock] = None,
		gain: float = 1.0,
		max_note_duration: float = performance_rnn.constants.timing.MAX_NOTE_DURATION_SECONDS,
		min_note_duration: float = performance_rnn.constants.timing.MIN_NOTE_DURATION_SECONDS
	) -> None:

		if max_note_duration <= 0:
			raise ValueError("max_note_duration must be positive")

		if min_note_duration < 0:
			raise ValueError("min_note_duration cannot be negative")

		self.sink = sink
		self.midi_out: performance_rnn.midi_utils.MidiOutput = midi_out if midi_out is not None else performance_rnn.midi_utils.NullMidiOutput()
		self.events = events if events is not None else performance_rnn.event_emitter.EventEmitter()
		self.clock = clock if clock is not None else VirtualClock()
		self.gain = gain
		self.max_note_duration = max_note_duration
		self.min_note_duration = min_note_duration

		self.active_notes: typing.Dict[int, float] = {}
		self.velocity: float = performance_rnn.constants.velocity.DEFAULT_VELOCITY / performance_rnn.constants.velocity.MAX_VELOCITY


	def key_velocity (self) -> float:

		"""Velocity for the audio sink, 0.0 to 1.0."""

		return min(max(self.velocity * self.gain, 0.0), 1.0)


	def midi_velocity (self) -> int:

		"""Velocity for the MIDI device, 0 to 127."""

		raw = math.floor(self.velocity * performance_rnn.constants.velocity.MAX_VELOCITY * self.gain)

		return min(max(raw, performance_rnn.constants.velocity.MIN_VELOCITY), performance_rnn.constants.velocity.MAX_VELOCITY)


	def apply_index (self, index: int) -> performance_rnn.events.Event:

		"""Decode a sampled index and apply it."""

		event = performance_rnn.events.decode(index)
		self.apply(event)

		return event


	def apply (self, event: performance_rnn.events.Event) -> None:

		"""Apply one event."""

		if isinstance(event, performance_rnn.events.NoteOn):
			self._note_on(event.pitch)

		elif isinstance(event, performance_rnn.events.NoteOff):
			self._note_off(event.pitch)

		elif isinstance(event, performance_rnn.events.TimeShift):
			self.clock.advance(event.seconds)
			self.release_expired()

		elif isinstance(event, performance_rnn.events.VelocityChange):
			self.velocity = min(1.0, event.bucket * VELOCITY_BUCKET_SIZE / performance_rnn.constants.velocity.MAX_VELOCITY)

		else:
			raise TypeError(f"Could not apply event: {event!r}")


	def _note_on (self, pitch: int) -> None:

		now = self.clock.time
		velocity = self.key_velocity()

		self.sink.key_down(pitch, now, velocity)
		self.active_notes[pitch] = now

		self._send_midi(performance_rnn.constants.velocity.MIDI_NOTE_ON, pitch, now)
		self.events.emit("note_on", pitch, now, velocity)


	def _note_off (self, pitch: int) -> None:

		start = self.active_notes.get(pitch)

		if start is None:
			return

		self._release(pitch, max(self.clock.time, start + self.min_note_duration))


	def _release (self, pitch: int, time: float) -> None:

		self.sink.key_up(pitch, time)
		del self.active_notes[pitch]

		self._send_midi(performance_rnn.constants.velocity.MIDI_NOTE_OFF, pitch, time)
		self.events.emit("note_off", pitch, time)


	def release_expired (self) -> typing.List[int]:

		"""Force-release notes held longer than ``max_note_duration``.  Returns the released pitches."""

		now = self.clock.time
		released: typing.List[int] = []

		for pitch, start in list(self.active_notes.items()):

			held = now - start

			if held > self.max_note_duration:
				logger.info(f"Note {pitch} has been active for {held:.2f} seconds, over {self.max_note_duration}; releasing")
				self._release(pitch, now)
				released.append(pitch)

		return released


	def release_all (self, time: typing.Optional[float] = None) -> typing.List[int]:

		"""
		Release every sounding note as if the model had emitted its note-off at ``time``.

		``time`` defaults to the current piano time.  The minimum note duration
		still applies, so a note triggered just before the release is not cut
		off before it is heard.
		"""

		release_time = self.clock.time if time is None else time
		released = list(self.active_notes)

		for pitch in released:
			self._release(pitch, max(release_time, self.active_notes[pitch] + self.min_note_duration))

		return released


	def _send_midi (self, status: int, pitch: int, piano_time: float) -> None:

		"""Send a note message to the MIDI device; failures never interrupt playback."""

		try:
			self.midi_out.send([status, pitch, self.midi_velocity()], self.clock.to_wall_time(piano_time))
		except Exception:
			logger.exception(f"Error sending MIDI message {status:#x} {pitch} to output device")
