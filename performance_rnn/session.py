"""The real-time generation session.

:class:`PerformanceSession` owns everything that persists between scheduler
ticks - recurrent state, the last sampled event, piano time, active notes
and the loop identifier - and drives generation from the asyncio event loop.

Each tick generates a small batch of events, then compares piano time with
the audio clock:

- ahead by more than ``buffer_seconds``: the next tick waits out the excess,
- behind by more than ``max_lag_seconds``: piano time snaps forward to the
  audio clock and the backlog is dropped (logged as a warning),
- otherwise the next tick runs immediately.

Ticks never overlap: the next one is only scheduled once the current one
has finished.  Every reset increments ``loop_id``; a tick scheduled under an
older identifier does nothing when it fires, so stale work from before a
reset can never run generation.
"""

import asyncio
import enum
import logging
import time
import typing

import numpy

import performance_rnn.actuator
import performance_rnn.conditioning
import performance_rnn.config
import performance_rnn.event_emitter
import performance_rnn.events
import performance_rnn.midi_utils
import performance_rnn.sampler
import performance_rnn.sinks
import performance_rnn.stepper
import performance_rnn.weights


logger = logging.getLogger(__name__)


class SessionState (enum.Enum):

	"""Where the session is in its tick cycle."""

	IDLE = "idle"
	GENERATING = "generating"
	SCHEDULED = "scheduled"
	PAUSED = "paused"


class PerformanceSession:

	"""
	Generates a live performance ahead of the audio clock.

	Events emitted on ``session.events``:

	- ``"reset"`` ``(loop_id)``
	- ``"note_on"`` ``(pitch, time, velocity)``
	- ``"note_off"`` ``(pitch, time)``
	- ``"lag"`` ``(seconds_behind)``
	- ``"pause"``, ``"resume"``, ``"start"``, ``"stop"``
	"""

	def __init__ (
		self,
		weights: performance_rnn.weights.ModelWeights,
		sink: performance_rnn.sinks.AudioSink,
		config: typing.Optional[performance_rnn.config.PerformanceConfig] = None,
		midi_out: typing.Optional[performance_rnn.midi_utils.MidiOutput] = None,
		sampler: typing.Optional[performance_rnn.sampler.Sampler] = None,
		wall_clock: typing.Callable[[], float] = time.perf_counter
	) -> None:

		"""Build a session; nothing is generated until :meth:`start` or :meth:`tick`.

		Parameters:
			weights: Validated model weights.
			sink: Audio engine and authoritative playback clock.
			config: Tunables; defaults to :class:`PerformanceConfig()`.
			midi_out: Optional MIDI output device (see :mod:`performance_rnn.midi_utils`).
			sampler: Event sampler; defaults to one seeded from ``config.seed``.
			wall_clock: Wall clock used to timestamp MIDI output.
		"""

		self.config = config if config is not None else performance_rnn.config.PerformanceConfig()
		self.sink = sink
		self.wall_clock = wall_clock

		self.stepper = performance_rnn.stepper.RecurrentStepper(weights, forget_bias=self.config.forget_bias)
		self.sampler = sampler if sampler is not None else performance_rnn.sampler.Sampler(seed=self.config.seed)
		self.events = performance_rnn.event_emitter.EventEmitter()
		self.clock = performance_rnn.actuator.VirtualClock()

		self.actuator = performance_rnn.actuator.EventActuator(
			sink = sink,
			midi_out = midi_out,
			events = self.events,
			clock = self.clock,
			gain = self.config.gain,
			max_note_duration = self.config.max_note_duration,
			min_note_duration = self.config.min_note_duration
		)

		# Conditioning parameters may be changed at any time; they take effect on the next step.
		self.density_index: int = self.config.density_index
		self.pitch_histogram: typing.List[int] = list(self.config.pitch_histogram)
		self.conditioned: bool = self.config.conditioned
		self.conditioning: numpy.ndarray = self._build_conditioning()

		self.recurrent_state = self.stepper.initial_state()
		self.last_index: int = performance_rnn.events.PRIMER_INDEX
		self.loop_id: int = 0

		self.state = SessionState.IDLE
		self.playing = True
		self.running = False

		self._loop: typing.Optional[asyncio.AbstractEventLoop] = None
		self._pending_tick: typing.Optional[asyncio.Handle] = None
		self._reset_timer: typing.Optional[asyncio.TimerHandle] = None
		self._done: typing.Optional[asyncio.Future] = None


	# -- state accessors ---------------------------------------------------

	@property
	def active_notes (self) -> typing.Dict[int, float]:

		"""Sounding pitches mapped to the piano time they started."""

		return self.actuator.active_notes


	@property
	def piano_time (self) -> float:

		return self.clock.time


	@property
	def gain (self) -> float:

		return self.actuator.gain


	# -- conditioning ------------------------------------------------------

	def _build_conditioning (self) -> numpy.ndarray:

		return performance_rnn.conditioning.build_conditioning(self.density_index, self.pitch_histogram, self.conditioned)


	def set_note_density (self, density_index: int) -> None:

		"""Select a note density bin (see ``DENSITY_BIN_RANGES``)."""

		performance_rnn.conditioning.encode_density(density_index)
		self.density_index = density_index
		self.conditioning = self._build_conditioning()

		logger.info(f"Note density set to {performance_rnn.conditioning.DENSITY_BIN_RANGES[density_index]} notes/second")


	def set_pitch_histogram (self, histogram: typing.Sequence[int]) -> None:

		"""Set the pitch-class histogram.  An all-zero histogram becomes ``[1, 0, ...]``."""

		self.pitch_histogram = performance_rnn.conditioning.guard_histogram(histogram)
		self.conditioning = self._build_conditioning()


	def set_gain (self, gain: float) -> None:

		if gain < 0:
			raise ValueError("Gain cannot be negative")

		self.actuator.gain = gain


	def set_conditioned (self, enabled: bool) -> None:

		"""
		Turn conditioning on or off.

		Switching it on after it was off also resets the session, since state
		built up while unconditioned does not follow the new constraints.
		"""

		was_conditioned = self.conditioned
		self.conditioned = enabled
		self.conditioning = self._build_conditioning()

		logger.info(f"Conditioning {'enabled' if enabled else 'disabled'}")

		if enabled and not was_conditioned:
			self.reset()


	# -- generation --------------------------------------------------------

	def reset (self) -> None:

		"""
		Restart generation from a clean state.

		Releases every sounding note, zeroes the recurrent state, primes the
		next input, re-anchors piano time to the audio clock and invalidates
		any tick scheduled under the previous loop identifier.  When playing
		on a running event loop, a tick for the new identifier is scheduled
		immediately.
		"""

		now = self.sink.now()

		# Notes from the old timeline would otherwise be measured against the new one.
		self.actuator.release_all(time=now)

		self.recurrent_state = self.stepper.initial_state()
		self.last_index = performance_rnn.events.PRIMER_INDEX
		self.clock.anchor(now, self.wall_clock())
		self.loop_id += 1
		self.conditioning = self._build_conditioning()

		self._cancel_pending_tick()

		logger.info(f"Session reset (loop {self.loop_id})")
		self.events.emit("reset", self.loop_id)

		if self.playing and self.running:
			self._schedule_tick(0.0, self.loop_id)


	def step (self) -> performance_rnn.events.Event:

		"""Generate and apply a single event, feeding it back as the next input."""

		self.recurrent_state, logits = self.stepper.step(self.recurrent_state, self.last_index, self.conditioning)
		self.last_index = self.sampler.sample(logits)

		return self.actuator.apply_index(self.last_index)


	def tick (self) -> float:

		"""
		Generate one batch of events and correct drift.

		Returns:
			Seconds to wait before the next tick.
		"""

		self.state = SessionState.GENERATING

		for _ in range(self.config.steps_per_tick):
			self.step()

		now = self.sink.now()
		lag = now - self.clock.time

		if lag > self.config.max_lag_seconds:
			logger.warning(
				f"Generation is {lag:.3f} seconds behind, which is over "
				f"{self.config.max_lag_seconds}. Resetting time!"
			)
			self.clock.snap(now)
			self.events.emit("lag", lag)

		return max(0.0, self.clock.time - now - self.config.buffer_seconds)


	def _run_tick (self, loop_id: int) -> None:

		"""Timer callback: run a tick for ``loop_id`` and schedule the next one."""

		if loop_id != self.loop_id:
			logger.debug(f"Ignoring stale tick for loop {loop_id} (current {self.loop_id})")
			return

		if not self.playing or not self.running:
			return

		self._pending_tick = None

		try:
			delay = self.tick()
		except Exception as e:
			logger.exception("Generation failed; stopping session")
			self._finish(e)
			return

		# A listener may have paused or reset the session during the tick.
		if self.playing and self.running and loop_id == self.loop_id and self._pending_tick is None:
			self._schedule_tick(delay, loop_id)


	def _schedule_tick (self, delay: float, loop_id: int) -> None:

		if self._loop is None:
			raise RuntimeError("Ticks can only be scheduled on a running session")

		self._cancel_pending_tick()

		if delay <= 0:
			self._pending_tick = self._loop.call_soon(self._run_tick, loop_id)
		else:
			self._pending_tick = self._loop.call_later(delay, self._run_tick, loop_id)

		self.state = SessionState.SCHEDULED


	def _cancel_pending_tick (self) -> None:

		if self._pending_tick is not None:
			self._pending_tick.cancel()
			self._pending_tick = None


	# -- transport ---------------------------------------------------------

	def pause (self) -> None:

		"""Stop generating.  Sounding notes are left to their normal lifetime."""

		if not self.playing:
			return

		self.playing = False
		self._cancel_pending_tick()
		self.state = SessionState.PAUSED

		logger.info("Session paused")
		self.events.emit("pause")


	def resume (self) -> None:

		"""Start generating again, immediately, under the current loop identifier."""

		if self.playing:
			return

		self.playing = True
		logger.info("Session resumed")
		self.events.emit("resume")

		if self.running:
			self._schedule_tick(0.0, self.loop_id)
		else:
			self.state = SessionState.IDLE


	def _periodic_reset (self) -> None:

		"""Reset on a fixed interval so the model does not drift into incoherence."""

		self._reset_timer = None

		if not self.running:
			return

		logger.info(f"Periodic reset after {self.config.reset_interval} seconds")
		self.reset()
		self._schedule_periodic_reset()


	def _schedule_periodic_reset (self) -> None:

		if self._loop is None or not self.config.reset_interval:
			return

		self._reset_timer = self._loop.call_later(self.config.reset_interval, self._periodic_reset)


	def _finish (self, error: typing.Optional[BaseException] = None) -> None:

		self.running = False
		self._cancel_pending_tick()

		if self._reset_timer is not None:
			self._reset_timer.cancel()
			self._reset_timer = None

		if self._done is not None and not self._done.done():
			if error is not None:
				self._done.set_exception(error)
			else:
				self._done.set_result(None)


	async def start (self) -> None:

		"""
		Start generating on the running event loop.

		Resets the session (anchoring piano time to the audio clock) and
		starts the periodic reset timer.
		"""

		if self.running:
			return

		self._loop = asyncio.get_running_loop()
		self._done = self._loop.create_future()
		self.running = True

		if not self.playing:
			self.state = SessionState.PAUSED

		self.reset()
		self._schedule_periodic_reset()

		logger.info("Session started")
		self.events.emit("start")


	async def stop (self) -> None:

		"""
		Stop generating, release every sounding note and close the MIDI output.
		"""

		if self._loop is None:
			return

		logger.info("Stopping session...")

		self._finish()
		self.actuator.release_all(time=self.sink.now())
		self.actuator.midi_out.close()

		self.state = SessionState.IDLE
		self._loop = None

		logger.info("Session stopped")
		self.events.emit("stop")


	async def play (self) -> None:

		"""
		Convenience method to start generating and wait until stopped.
		"""

		await self.start()

		try:
			if self._done is not None:
				await self._done
		except asyncio.CancelledError:
			pass
		finally:
			await self.stop()
