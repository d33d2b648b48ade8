"""Record a generated performance to a standard MIDI file."""

import datetime
import logging
import typing

import mido

import performance_rnn.constants.velocity

if typing.TYPE_CHECKING:
	from performance_rnn.session import PerformanceSession


logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 480
TEMPO = mido.bpm2tempo(120)


class PerformanceRecorder:

	"""
	Collects note events from a session and writes them as a type 0 MIDI file.

	Times are taken from the session's piano time, which stays on the audio
	sink's clock across resets, so a recording spanning several resets plays
	back in the order it was heard.
	"""

	def __init__ (self, session: "PerformanceSession", filename: typing.Optional[str] = None) -> None:

		self.session = session
		self.filename = filename
		self.recorded_events: typing.List[typing.Tuple[float, mido.Message]] = []

		session.events.on("note_on", self._on_note_on)
		session.events.on("note_off", self._on_note_off)


	def _on_note_on (self, pitch: int, time: float, velocity: float) -> None:

		midi_velocity = max(1, min(round(velocity * performance_rnn.constants.velocity.MAX_VELOCITY), performance_rnn.constants.velocity.MAX_VELOCITY))
		self.recorded_events.append((time, mido.Message('note_on', note=pitch, velocity=midi_velocity)))


	def _on_note_off (self, pitch: int, time: float) -> None:

		self.recorded_events.append((time, mido.Message('note_off', note=pitch, velocity=0)))


	def detach (self) -> None:

		"""Stop listening to the session."""

		self.session.events.off("note_on", self._on_note_on)
		self.session.events.off("note_off", self._on_note_off)


	def to_midi_file (self) -> mido.MidiFile:

		"""Build a MIDI file from the events recorded so far."""

		mid = mido.MidiFile(type=0, ticks_per_beat=TICKS_PER_BEAT)
		track = mido.MidiTrack()
		mid.tracks.append(track)

		track.append(mido.MetaMessage('set_tempo', tempo=TEMPO, time=0))

		# Stable sort keeps a note-on ahead of an off stamped at the same time.
		events = sorted(self.recorded_events, key=lambda x: x[0])

		if not events:
			return mid

		last_tick = 0
		start = events[0][0]

		for time, message in events:

			tick = int(round(mido.second2tick(time - start, TICKS_PER_BEAT, TEMPO)))
			track.append(message.copy(time=max(0, tick - last_tick)))
			last_tick = max(last_tick, tick)

		return mid


	def save (self, filename: typing.Optional[str] = None) -> typing.Optional[str]:

		"""Write the recording to disk.  Returns the filename, or None when nothing was recorded."""

		if not self.recorded_events:
			return None

		target = filename or self.filename

		if not target:
			now = datetime.datetime.now()
			target = now.strftime("performance_%Y%m%d_%H%M%S.mid")

		logger.info(f"Saving MIDI recording ({len(self.recorded_events)} events) to {target}...")

		try:
			self.to_midi_file().save(target)
			logger.info(f"Saved {target}")
		except OSError as e:
			logger.error(f"Failed to save MIDI recording: {e}")
			return None

		return target
