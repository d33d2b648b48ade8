"""Model weights for the performance LSTM.

Weights arrive as a plain mapping from tensor name to array, keyed by the
names the model was exported with.  :class:`ModelWeights` checks every
shape once, up front, so a mismatched checkpoint fails loudly at load time
rather than producing garbage mid-performance.
"""

import logging
import os
import typing

import numpy

import performance_rnn.conditioning
import performance_rnn.events


logger = logging.getLogger(__name__)


class WeightsError (ValueError):

	"""Raised when model weights are missing or have inconsistent shapes."""


NUM_LAYERS = 3

CELL_KERNEL_NAME = "rnn/multi_rnn_cell/cell_{layer}/basic_lstm_cell/kernel"
CELL_BIAS_NAME = "rnn/multi_rnn_cell/cell_{layer}/basic_lstm_cell/bias"
PROJECTION_WEIGHTS_NAME = "fully_connected/weights"
PROJECTION_BIASES_NAME = "fully_connected/biases"

# Input to the first layer: conditioning followed by the one-hot previous event.
INPUT_SIZE = performance_rnn.conditioning.CONDITIONING_SIZE + performance_rnn.events.EVENT_SIZE


def required_names () -> typing.List[str]:

	"""All tensor names a checkpoint must provide."""

	names: typing.List[str] = []

	for layer in range(NUM_LAYERS):
		names.append(CELL_KERNEL_NAME.format(layer=layer))
		names.append(CELL_BIAS_NAME.format(layer=layer))

	names.append(PROJECTION_WEIGHTS_NAME)
	names.append(PROJECTION_BIASES_NAME)

	return names


class ModelWeights:

	"""Validated kernel/bias arrays for the LSTM stack and output projection."""

	def __init__ (
		self,
		kernels: typing.Sequence[numpy.ndarray],
		biases: typing.Sequence[numpy.ndarray],
		projection_weights: numpy.ndarray,
		projection_biases: numpy.ndarray
	) -> None:

		"""Store float32 copies of the arrays and validate their shapes."""

		self.kernels = [numpy.asarray(k, dtype=numpy.float32) for k in kernels]
		self.biases = [numpy.asarray(b, dtype=numpy.float32) for b in biases]
		self.projection_weights = numpy.asarray(projection_weights, dtype=numpy.float32)
		self.projection_biases = numpy.asarray(projection_biases, dtype=numpy.float32)

		self._validate()


	@property
	def hidden_sizes (self) -> typing.List[int]:

		"""Width of each layer's cell and hidden state."""

		return [b.shape[0] // 4 for b in self.biases]


	def _validate (self) -> None:

		"""Check every shape against the vocabulary, the conditioning width and each other."""

		if len(self.kernels) != NUM_LAYERS or len(self.biases) != NUM_LAYERS:
			raise WeightsError(f"Expected {NUM_LAYERS} LSTM layers, got {len(self.kernels)} kernels and {len(self.biases)} biases")

		input_width = INPUT_SIZE

		for layer, (kernel, bias) in enumerate(zip(self.kernels, self.biases)):

			if bias.ndim != 1 or bias.shape[0] == 0 or bias.shape[0] % 4 != 0:
				raise WeightsError(f"Layer {layer} bias length {bias.shape} is not a positive multiple of 4")

			hidden = bias.shape[0] // 4
			expected = (input_width + hidden, 4 * hidden)

			if kernel.shape != expected:
				raise WeightsError(f"Layer {layer} kernel shape {kernel.shape} does not match expected {expected}")

			input_width = hidden

		expected_projection = (input_width, performance_rnn.events.EVENT_SIZE)

		if self.projection_weights.shape != expected_projection:
			raise WeightsError(f"Projection weights shape {self.projection_weights.shape} does not match expected {expected_projection}")

		if self.projection_biases.shape != (performance_rnn.events.EVENT_SIZE,):
			raise WeightsError(f"Projection biases shape {self.projection_biases.shape} does not match vocabulary size {performance_rnn.events.EVENT_SIZE}")


	@classmethod
	def from_mapping (cls, tensors: typing.Mapping[str, typing.Any]) -> "ModelWeights":

		"""
		Build weights from a name → array mapping.

		Extra names are ignored; missing names raise :class:`WeightsError`.
		"""

		missing = [name for name in required_names() if name not in tensors]

		if missing:
			raise WeightsError(f"Missing weight tensors: {missing}")

		return cls(
			kernels = [tensors[CELL_KERNEL_NAME.format(layer=layer)] for layer in range(NUM_LAYERS)],
			biases = [tensors[CELL_BIAS_NAME.format(layer=layer)] for layer in range(NUM_LAYERS)],
			projection_weights = tensors[PROJECTION_WEIGHTS_NAME],
			projection_biases = tensors[PROJECTION_BIASES_NAME]
		)


	@classmethod
	def load_npz (cls, path: typing.Union[str, os.PathLike]) -> "ModelWeights":

		"""Load weights from a numpy ``.npz`` archive keyed by tensor name."""

		with numpy.load(path) as archive:
			tensors = {name: archive[name] for name in archive.files}

		weights = cls.from_mapping(tensors)
		logger.info(f"Loaded weights from {path} (hidden sizes {weights.hidden_sizes})")

		return weights


	@classmethod
	def random (cls, hidden_sizes: typing.Sequence[int] = (64, 64, 64), seed: typing.Optional[int] = None, scale: float = 0.1) -> "ModelWeights":

		"""
		Random weights with valid shapes.

		Useful for exercising the scheduler without a trained checkpoint; the
		output is musically meaningless.
		"""

		if len(hidden_sizes) != NUM_LAYERS:
			raise WeightsError(f"Expected {NUM_LAYERS} hidden sizes, got {len(hidden_sizes)}")

		rng = numpy.random.default_rng(seed)
		kernels = []
		biases = []
		input_width = INPUT_SIZE

		for hidden in hidden_sizes:
			kernels.append(rng.normal(0.0, scale, size=(input_width + hidden, 4 * hidden)))
			biases.append(numpy.zeros(4 * hidden))
			input_width = hidden

		return cls(
			kernels = kernels,
			biases = biases,
			projection_weights = rng.normal(0.0, scale, size=(input_width, performance_rnn.events.EVENT_SIZE)),
			projection_biases = numpy.zeros(performance_rnn.events.EVENT_SIZE)
		)


	def as_mapping (self) -> typing.Dict[str, numpy.ndarray]:

		"""Return the weights keyed by their checkpoint names."""

		tensors: typing.Dict[str, numpy.ndarray] = {}

		for layer in range(NUM_LAYERS):
			tensors[CELL_KERNEL_NAME.format(layer=layer)] = self.kernels[layer]
			tensors[CELL_BIAS_NAME.format(layer=layer)] = self.biases[layer]

		tensors[PROJECTION_WEIGHTS_NAME] = self.projection_weights
		tensors[PROJECTION_BIASES_NAME] = self.projection_biases

		return tensors
