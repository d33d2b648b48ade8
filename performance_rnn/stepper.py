"""The recurrent stepper: one event in, next-event logits out.

The model is a stack of three basic LSTM cells followed by an affine
projection onto the event vocabulary.  :class:`RecurrentStepper` is a pure
state-transition function - ``step(state, last_index, conditioning)``
returns a fresh :class:`RecurrentState` and never touches the one it was
given - so the caller decides what state survives between scheduler ticks.

All arithmetic is float32.
"""

import dataclasses
import typing

import numpy

import performance_rnn.conditioning
import performance_rnn.events
import performance_rnn.weights


DEFAULT_FORGET_BIAS = 1.0


@dataclasses.dataclass (frozen=True)
class RecurrentState:

	"""Per-layer cell and hidden vectors carried between steps."""

	cells: typing.Tuple[numpy.ndarray, ...]
	hiddens: typing.Tuple[numpy.ndarray, ...]

	@classmethod
	def zeros (cls, widths: typing.Sequence[int]) -> "RecurrentState":

		"""All-zero state for layers of the given widths."""

		return cls(
			cells = tuple(numpy.zeros(w, dtype=numpy.float32) for w in widths),
			hiddens = tuple(numpy.zeros(w, dtype=numpy.float32) for w in widths)
		)

	@property
	def widths (self) -> typing.List[int]:
		return [c.shape[0] for c in self.cells]


def sigmoid (x: numpy.ndarray) -> numpy.ndarray:

	"""Logistic function that stays finite for large negative inputs."""

	return numpy.float32(0.5) * (numpy.tanh(numpy.float32(0.5) * x) + numpy.float32(1.0))


def lstm_cell (
	kernel: numpy.ndarray,
	bias: numpy.ndarray,
	data: numpy.ndarray,
	cell: numpy.ndarray,
	hidden: numpy.ndarray,
	forget_bias: float = DEFAULT_FORGET_BIAS
) -> typing.Tuple[numpy.ndarray, numpy.ndarray]:

	"""
	Advance one basic LSTM cell by a single step.

	The kernel multiplies ``concat(data, hidden)`` and its columns are laid
	out as four gate blocks in the order input, candidate, forget, output.
	``forget_bias`` is added to the forget gate before its sigmoid.

	Returns:
		The new ``(cell, hidden)`` pair.
	"""

	gates = numpy.concatenate((data, hidden)) @ kernel + bias
	i, j, f, o = numpy.split(gates, 4)

	new_cell = cell * sigmoid(f + numpy.float32(forget_bias)) + sigmoid(i) * numpy.tanh(j)
	new_hidden = numpy.tanh(new_cell) * sigmoid(o)

	return new_cell.astype(numpy.float32, copy=False), new_hidden.astype(numpy.float32, copy=False)


class RecurrentStepper:

	"""Runs the three-layer LSTM stack and output projection one event at a time."""

	def __init__ (self, weights: performance_rnn.weights.ModelWeights, forget_bias: float = DEFAULT_FORGET_BIAS) -> None:

		self.weights = weights
		self.forget_bias = forget_bias


	def initial_state (self) -> RecurrentState:

		"""Zero state sized for these weights."""

		return RecurrentState.zeros(self.weights.hidden_sizes)


	def encode_input (self, last_index: int, conditioning: numpy.ndarray) -> numpy.ndarray:

		"""Concatenate the conditioning vector with a one-hot of the previous event."""

		if conditioning.shape != (performance_rnn.conditioning.CONDITIONING_SIZE,):
			raise ValueError(
				f"Conditioning vector shape {conditioning.shape} does not match "
				f"({performance_rnn.conditioning.CONDITIONING_SIZE},)"
			)

		if not 0 <= last_index < performance_rnn.events.EVENT_SIZE:
			raise performance_rnn.events.InvalidIndex(f"Previous event index {last_index} outside vocabulary")

		event_input = numpy.zeros(performance_rnn.events.EVENT_SIZE, dtype=numpy.float32)
		event_input[last_index] = 1.0

		return numpy.concatenate((conditioning.astype(numpy.float32, copy=False), event_input))


	def step (
		self,
		state: RecurrentState,
		last_index: int,
		conditioning: numpy.ndarray
	) -> typing.Tuple[RecurrentState, numpy.ndarray]:

		"""
		Feed one event through the stack.

		Parameters:
			state: State after the previous step (left unmodified).
			last_index: Vocabulary index of the previously sampled event.
			conditioning: Vector from :func:`performance_rnn.conditioning.build_conditioning`.

		Returns:
			``(new_state, logits)`` where ``logits`` has one entry per event.
		"""

		if state.widths != self.weights.hidden_sizes:
			raise ValueError(f"State widths {state.widths} do not match model widths {self.weights.hidden_sizes}")

		data = self.encode_input(last_index, conditioning)
		cells: typing.List[numpy.ndarray] = []
		hiddens: typing.List[numpy.ndarray] = []

		for layer, (kernel, bias) in enumerate(zip(self.weights.kernels, self.weights.biases)):
			cell, hidden = lstm_cell(kernel, bias, data, state.cells[layer], state.hiddens[layer], self.forget_bias)
			cells.append(cell)
			hiddens.append(hidden)
			data = hidden

		logits = data @ self.weights.projection_weights + self.weights.projection_biases

		return RecurrentState(cells=tuple(cells), hiddens=tuple(hiddens)), logits.astype(numpy.float32, copy=False)
