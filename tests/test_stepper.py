import numpy
import pytest

import performance_rnn.conditioning
import performance_rnn.events
import performance_rnn.sampler
import performance_rnn.stepper
import performance_rnn.weights


def _sigmoid (x: numpy.ndarray) -> numpy.ndarray:

	return 1.0 / (1.0 + numpy.exp(-x))


def _conditioning () -> numpy.ndarray:

	return performance_rnn.conditioning.build_conditioning(2, [1] * 12, True)


def test_lstm_cell_matches_reference () -> None:

	"""Gate order i, j, f, o with the forget bias added before its sigmoid."""

	rng = numpy.random.default_rng(7)
	data = rng.normal(size=3).astype(numpy.float32)
	cell = rng.normal(size=2).astype(numpy.float32)
	hidden = rng.normal(size=2).astype(numpy.float32)
	kernel = rng.normal(size=(5, 8)).astype(numpy.float32)
	bias = rng.normal(size=8).astype(numpy.float32)

	new_cell, new_hidden = performance_rnn.stepper.lstm_cell(kernel, bias, data, cell, hidden, forget_bias=1.0)

	gates = numpy.concatenate((data, hidden)) @ kernel + bias
	i, j, f, o = gates[0:2], gates[2:4], gates[4:6], gates[6:8]
	expected_cell = cell * _sigmoid(f + 1.0) + _sigmoid(i) * numpy.tanh(j)
	expected_hidden = numpy.tanh(expected_cell) * _sigmoid(o)

	numpy.testing.assert_allclose(new_cell, expected_cell, rtol=1e-5, atol=1e-6)
	numpy.testing.assert_allclose(new_hidden, expected_hidden, rtol=1e-5, atol=1e-6)
	assert new_cell.dtype == numpy.float32
	assert new_hidden.dtype == numpy.float32


def test_lstm_cell_zero_weights () -> None:

	"""With zero weights only the forget bias shapes the cell state."""

	kernel = numpy.zeros((3, 4), dtype=numpy.float32)
	bias = numpy.zeros(4, dtype=numpy.float32)
	cell = numpy.array([2.0], dtype=numpy.float32)
	hidden = numpy.zeros(1, dtype=numpy.float32)

	new_cell, new_hidden = performance_rnn.stepper.lstm_cell(kernel, bias, numpy.ones(2, dtype=numpy.float32), cell, hidden, forget_bias=1.0)

	assert new_cell[0] == pytest.approx(2.0 * _sigmoid(1.0), rel=1e-5)
	assert new_hidden[0] == pytest.approx(numpy.tanh(new_cell[0]) * 0.5, rel=1e-5)


def test_initial_state_is_zero (weights: performance_rnn.weights.ModelWeights) -> None:

	stepper = performance_rnn.stepper.RecurrentStepper(weights)
	state = stepper.initial_state()

	assert state.widths == [8, 8, 8]
	assert all(not c.any() for c in state.cells)
	assert all(not h.any() for h in state.hiddens)


def test_step_shapes (weights: performance_rnn.weights.ModelWeights) -> None:

	stepper = performance_rnn.stepper.RecurrentStepper(weights)
	state, logits = stepper.step(stepper.initial_state(), performance_rnn.events.PRIMER_INDEX, _conditioning())

	assert logits.shape == (performance_rnn.events.EVENT_SIZE,)
	assert logits.dtype == numpy.float32
	assert state.widths == [8, 8, 8]
	assert any(h.any() for h in state.hiddens)


def test_step_does_not_mutate_state (weights: performance_rnn.weights.ModelWeights) -> None:

	"""The given state is left as it was; a new one is returned."""

	stepper = performance_rnn.stepper.RecurrentStepper(weights)
	state, _ = stepper.step(stepper.initial_state(), 60, _conditioning())
	snapshot = [c.copy() for c in state.cells] + [h.copy() for h in state.hiddens]

	new_state, _ = stepper.step(state, 300, _conditioning())

	for before, after in zip(snapshot, list(state.cells) + list(state.hiddens)):
		numpy.testing.assert_array_equal(before, after)

	assert new_state is not state


def test_step_is_deterministic_with_seeded_sampler (weights: performance_rnn.weights.ModelWeights) -> None:

	"""Same state, input and seed: same state, logits and sample."""

	stepper = performance_rnn.stepper.RecurrentStepper(weights)
	state, _ = stepper.step(stepper.initial_state(), 60, _conditioning())

	results = []

	for _ in range(2):
		new_state, logits = stepper.step(state, 356, _conditioning())
		index = performance_rnn.sampler.Sampler(seed=42).sample(logits)
		results.append((new_state, logits, index))

	(state_a, logits_a, index_a), (state_b, logits_b, index_b) = results

	numpy.testing.assert_array_equal(logits_a, logits_b)
	assert index_a == index_b

	for a, b in zip(state_a.hiddens + state_a.cells, state_b.hiddens + state_b.cells):
		numpy.testing.assert_array_equal(a, b)


def test_conditioning_changes_output (weights: performance_rnn.weights.ModelWeights) -> None:

	stepper = performance_rnn.stepper.RecurrentStepper(weights)
	state = stepper.initial_state()

	_, conditioned = stepper.step(state, 60, _conditioning())
	_, unconditioned = stepper.step(state, 60, performance_rnn.conditioning.unconditioned())

	assert not numpy.allclose(conditioned, unconditioned)


def test_wrong_conditioning_width_raises (weights: performance_rnn.weights.ModelWeights) -> None:

	stepper = performance_rnn.stepper.RecurrentStepper(weights)

	with pytest.raises(ValueError):
		stepper.step(stepper.initial_state(), 60, numpy.zeros(20, dtype=numpy.float32))


def test_invalid_last_index_raises (weights: performance_rnn.weights.ModelWeights) -> None:

	stepper = performance_rnn.stepper.RecurrentStepper(weights)

	with pytest.raises(performance_rnn.events.InvalidIndex):
		stepper.step(stepper.initial_state(), performance_rnn.events.EVENT_SIZE, _conditioning())


def test_state_width_mismatch_raises (weights: performance_rnn.weights.ModelWeights) -> None:

	stepper = performance_rnn.stepper.RecurrentStepper(weights)

	with pytest.raises(ValueError):
		stepper.step(performance_rnn.stepper.RecurrentState.zeros([4, 4, 4]), 60, _conditioning())
