"""Steer the performance from a MIDI keyboard.

Notes played on a MIDI input device are folded into the session's pitch
histogram, so the model follows whatever the player is playing:

- A note more than ``chord_window`` seconds after the previous one starts a
  new chord: the histogram is cleared and the session reset.
- A note while conditioning is off switches it on (which also resets).
- ``midi_idle_timeout`` seconds after a note, if nothing newer has been
  played, conditioning is switched off and the session reset.

mido delivers input on its own thread; messages are handed to the event
loop with ``call_soon_threadsafe`` so all session changes happen between
ticks.
"""

import asyncio
import logging
import time
import typing

import performance_rnn.conditioning
import performance_rnn.midi_utils

if typing.TYPE_CHECKING:
	from performance_rnn.session import PerformanceSession


logger = logging.getLogger(__name__)


class MidiInputConditioner:

	"""Builds a live pitch histogram from MIDI note-on messages."""

	def __init__ (
		self,
		session: "PerformanceSession",
		clock: typing.Callable[[], float] = time.perf_counter,
		idle_timeout: typing.Optional[float] = None,
		chord_window: typing.Optional[float] = None
	) -> None:

		self.session = session
		self.clock = clock
		self.idle_timeout = idle_timeout if idle_timeout is not None else session.config.midi_idle_timeout
		self.chord_window = chord_window if chord_window is not None else session.config.chord_window

		self.histogram: typing.List[int] = [0] * performance_rnn.conditioning.PITCH_HISTOGRAM_SIZE
		self.last_note_time: float = clock()

		self.midi_in: typing.Any = None
		self._loop: typing.Optional[asyncio.AbstractEventLoop] = None
		self._idle_timer: typing.Optional[asyncio.TimerHandle] = None


	def note_on (self, note: int) -> None:

		"""Fold one played note into the histogram."""

		now = self.clock()

		if now - self.last_note_time > self.chord_window:
			self.histogram = [0] * performance_rnn.conditioning.PITCH_HISTOGRAM_SIZE
			self.session.reset()

		self.last_note_time = now

		if not self.session.conditioned:
			self.session.set_conditioned(True)

		self._schedule_idle_check()

		self.histogram[note % performance_rnn.conditioning.NOTES_PER_OCTAVE] += 1
		self.session.set_pitch_histogram(self.histogram)


	def _schedule_idle_check (self) -> None:

		"""Arrange for the idle check to run ``idle_timeout`` after the latest note."""

		loop = self._loop

		if loop is None:
			try:
				loop = asyncio.get_running_loop()
			except RuntimeError:
				return

		if self._idle_timer is not None:
			self._idle_timer.cancel()

		self._idle_timer = loop.call_later(self.idle_timeout, self.check_idle)


	def check_idle (self) -> None:

		"""Switch conditioning off when no note has arrived for ``idle_timeout`` seconds."""

		self._idle_timer = None

		if self.clock() - self.last_note_time >= self.idle_timeout and self.session.conditioned:
			logger.info(f"No MIDI input for {self.idle_timeout} seconds; disabling conditioning")
			self.session.set_conditioned(False)
			self.session.reset()


	def handle_message (self, message: typing.Any) -> None:

		"""Handle a mido message on the event loop thread."""

		# A note-on with velocity 0 is a note-off.
		if message.type == "note_on" and message.velocity > 0:
			self.note_on(message.note)


	def _on_midi_input (self, message: typing.Any) -> None:

		"""mido callback thread: forward to the event loop."""

		if self._loop is None:
			return

		self._loop.call_soon_threadsafe(self.handle_message, message)


	async def open (self, device_name: str) -> bool:

		"""Open a MIDI input device.  Returns False when no device could be opened."""

		self._loop = asyncio.get_running_loop()

		name, midi_in = performance_rnn.midi_utils.select_input_device(device_name, callback=self._on_midi_input)

		if name is None:
			return False

		self.midi_in = midi_in
		return True


	def close (self) -> None:

		if self._idle_timer is not None:
			self._idle_timer.cancel()
			self._idle_timer = None

		if self.midi_in is not None:
			self.midi_in.close()
			self.midi_in = None

		self._loop = None
