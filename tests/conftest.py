import itertools
import typing

import mido
import numpy
import pytest

import performance_rnn.config
import performance_rnn.session
import performance_rnn.weights


class FakeMidiOut:

	"""Minimal MIDI output port stub that records what it is sent."""

	def __init__ (self) -> None:

		self.sent: typing.List[mido.Message] = []
		self.closed = False


	def send (self, message: mido.Message) -> None:

		"""Record outgoing MIDI messages."""

		self.sent.append(message)


	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True


class FakeMidiIn:

	"""Minimal MIDI input stub for tests."""

	def __init__ (self, callback: typing.Optional[typing.Callable] = None) -> None:

		"""Store the callback for injecting test messages."""

		self.callback = callback
		self.closed = False

	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True

	def inject (self, message: mido.Message) -> None:

		"""Simulate receiving a MIDI message by calling the stored callback."""

		if self.callback is not None:
			self.callback(message)


class RecordingMidiOutput:

	"""A ``MidiOutput`` that keeps every (bytes, timestamp) pair."""

	def __init__ (self) -> None:

		self.sent: typing.List[typing.Tuple[typing.List[int], typing.Optional[float]]] = []
		self.closed = False

	def send (self, data: typing.Sequence[int], timestamp: typing.Optional[float] = None) -> None:

		self.sent.append((list(data), timestamp))

	def close (self) -> None:

		self.closed = True


class FakeSink:

	"""Audio sink with a manually advanced clock that records key events."""

	def __init__ (self, now: float = 0.0) -> None:

		self.time = now
		self.downs: typing.List[typing.Tuple[int, float, float]] = []
		self.ups: typing.List[typing.Tuple[int, float]] = []

	def key_down (self, pitch: int, time: float, velocity: float) -> None:

		self.downs.append((pitch, time, velocity))

	def key_up (self, pitch: int, time: float) -> None:

		self.ups.append((pitch, time))

	def now (self) -> float:

		return self.time


class ScriptedSampler:

	"""Sampler stand-in returning a fixed, repeating sequence of indices."""

	def __init__ (self, indices: typing.Sequence[int]) -> None:

		self.indices = list(indices)
		self._cycle = itertools.cycle(self.indices)
		self.calls = 0

	def sample (self, logits: numpy.ndarray) -> int:

		self.calls += 1
		return next(self._cycle)


# Module-level references so tests can access the most recently created fakes.
_current_fake_output: typing.Optional[FakeMidiOut] = None
_current_fake_input: typing.Optional[FakeMidiIn] = None


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut()
	_current_fake_output = fake
	return fake


def _fake_get_input_names () -> list[str]:

	"""Return a fixed list of MIDI input names for tests."""

	return ["Dummy MIDI"]


def _fake_open_input (name: str, callback: typing.Optional[typing.Callable] = None) -> FakeMidiIn:

	"""Return a fake MIDI input regardless of the name."""

	global _current_fake_input
	fake = FakeMidiIn(callback=callback)
	_current_fake_input = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use fake MIDI output and input for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)
	monkeypatch.setattr(mido, "get_input_names", _fake_get_input_names)
	monkeypatch.setattr(mido, "open_input", _fake_open_input)


@pytest.fixture(scope="session")
def weights () -> performance_rnn.weights.ModelWeights:

	"""Small random weights with valid shapes."""

	return performance_rnn.weights.ModelWeights.random(hidden_sizes=(8, 8, 8), seed=0)


@pytest.fixture
def sink () -> FakeSink:

	return FakeSink()


@pytest.fixture
def midi_out () -> RecordingMidiOutput:

	return RecordingMidiOutput()


def make_session (
	weights: performance_rnn.weights.ModelWeights,
	sink: FakeSink,
	indices: typing.Optional[typing.Sequence[int]] = None,
	**config: typing.Any
) -> performance_rnn.session.PerformanceSession:

	"""Build a session, optionally with a scripted sampler and config overrides."""

	config.setdefault("reset_interval", None)

	return performance_rnn.session.PerformanceSession(
		weights = weights,
		sink = sink,
		config = performance_rnn.config.PerformanceConfig(**config),
		midi_out = RecordingMidiOutput(),
		sampler = ScriptedSampler(indices) if indices is not None else None,
		wall_clock = lambda: 1000.0
	)
