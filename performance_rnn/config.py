"""Performance configuration.

Every tunable the session uses lives on :class:`PerformanceConfig`.  Values
can come from code or from a YAML file:

```yaml
steps_per_tick: 10
buffer_seconds: 0.5
density_index: 3
pitch_histogram: [2, 0, 1, 0, 1, 1, 0, 1, 0, 1, 0, 1]
gain: 1.2
```

Missing keys keep their defaults; unknown keys are an error so a typo never
silently leaves a default in place.
"""

import dataclasses
import logging
import os
import typing

import yaml

import performance_rnn.conditioning
import performance_rnn.constants.timing


logger = logging.getLogger(__name__)


def _default_histogram () -> typing.List[int]:
	return [1] * performance_rnn.conditioning.PITCH_HISTOGRAM_SIZE


@dataclasses.dataclass
class PerformanceConfig:

	"""Scheduler, note-lifetime and conditioning settings for a session.

	Attributes:
		steps_per_tick: Events generated per scheduler tick.  More steps
			make underruns less likely; fewer keep the event loop responsive.
		buffer_seconds: How far ahead of the audio clock to generate.
		max_lag_seconds: When generation falls this far behind, piano time
			snaps forward to the audio clock.
		max_note_duration: Notes held longer than this are released.
		min_note_duration: Shortest time between a note-on and its note-off.
		reset_interval: Seconds between forced resets of the model state.
			``None`` or ``0`` disables them.
		forget_bias: Added to the LSTM forget gate.  Must match training.
		gain: Multiplier applied to model velocities.
		density_index: Index into ``DENSITY_BIN_RANGES``.
		pitch_histogram: Twelve pitch-class weights, C first.
		conditioned: Whether the model follows density and histogram.
		midi_idle_timeout: Seconds without MIDI input before conditioning
			is switched off again.
		chord_window: MIDI input notes closer together than this build one
			histogram; a longer gap starts a new one.
		seed: Seed for the sampler; ``None`` draws from OS entropy.
	"""

	steps_per_tick: int = performance_rnn.constants.timing.STEPS_PER_TICK
	buffer_seconds: float = performance_rnn.constants.timing.GENERATION_BUFFER_SECONDS
	max_lag_seconds: float = performance_rnn.constants.timing.MAX_GENERATION_LAG_SECONDS
	max_note_duration: float = performance_rnn.constants.timing.MAX_NOTE_DURATION_SECONDS
	min_note_duration: float = performance_rnn.constants.timing.MIN_NOTE_DURATION_SECONDS
	reset_interval: typing.Optional[float] = performance_rnn.constants.timing.RESET_INTERVAL_SECONDS
	forget_bias: float = 1.0
	gain: float = 1.0
	density_index: int = 0
	pitch_histogram: typing.List[int] = dataclasses.field(default_factory=_default_histogram)
	conditioned: bool = True
	midi_idle_timeout: float = performance_rnn.constants.timing.MIDI_IN_IDLE_TIMEOUT_SECONDS
	chord_window: float = performance_rnn.constants.timing.MIDI_IN_CHORD_WINDOW_SECONDS
	seed: typing.Optional[int] = None


	def __post_init__ (self) -> None:

		"""Validate ranges and normalise the histogram."""

		if self.steps_per_tick < 1:
			raise ValueError("steps_per_tick must be at least 1")

		if self.buffer_seconds < 0:
			raise ValueError("buffer_seconds cannot be negative")

		if self.max_lag_seconds <= 0:
			raise ValueError("max_lag_seconds must be positive")

		if self.max_note_duration <= 0:
			raise ValueError("max_note_duration must be positive")

		if self.min_note_duration < 0:
			raise ValueError("min_note_duration cannot be negative")

		if self.reset_interval is not None and self.reset_interval < 0:
			raise ValueError("reset_interval cannot be negative")

		if self.gain < 0:
			raise ValueError("gain cannot be negative")

		if self.midi_idle_timeout <= 0 or self.chord_window <= 0:
			raise ValueError("MIDI input timeouts must be positive")

		# Raises ConditioningError for a bad index.
		performance_rnn.conditioning.encode_density(self.density_index)

		self.pitch_histogram = performance_rnn.conditioning.guard_histogram(self.pitch_histogram)


	@classmethod
	def from_dict (cls, values: typing.Mapping[str, typing.Any]) -> "PerformanceConfig":

		"""Build a config from a mapping, rejecting unknown keys."""

		known = {field.name for field in dataclasses.fields(cls)}
		unknown = sorted(set(values) - known)

		if unknown:
			raise ValueError(f"Unknown configuration keys: {unknown}")

		return cls(**dict(values))


def load_config (config_path: typing.Optional[str] = None) -> PerformanceConfig:

	"""
	Load configuration from a YAML file.

	A missing path (or ``None``) gives the defaults.
	"""

	if config_path is None:
		return PerformanceConfig()

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return PerformanceConfig()

	with open(config_path, 'r') as f:
		values = yaml.safe_load(f) or {}

	if not isinstance(values, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping")

	return PerformanceConfig.from_dict(values)
