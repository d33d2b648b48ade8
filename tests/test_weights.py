import pathlib

import numpy
import pytest

import performance_rnn.events
import performance_rnn.weights


def _mapping (hidden: int = 4) -> dict:

	return performance_rnn.weights.ModelWeights.random(hidden_sizes=(hidden, hidden, hidden), seed=1).as_mapping()


def test_required_names () -> None:

	"""Three kernel/bias pairs plus the projection."""

	names = performance_rnn.weights.required_names()

	assert len(names) == 8
	assert "rnn/multi_rnn_cell/cell_0/basic_lstm_cell/kernel" in names
	assert "rnn/multi_rnn_cell/cell_2/basic_lstm_cell/bias" in names
	assert "fully_connected/weights" in names
	assert "fully_connected/biases" in names


def test_random_weights_shapes () -> None:

	"""Layer widths come from bias length / 4."""

	weights = performance_rnn.weights.ModelWeights.random(hidden_sizes=(16, 12, 8), seed=0)

	assert weights.hidden_sizes == [16, 12, 8]
	assert weights.kernels[0].shape == (performance_rnn.weights.INPUT_SIZE + 16, 64)
	assert weights.kernels[1].shape == (16 + 12, 48)
	assert weights.kernels[2].shape == (12 + 8, 32)
	assert weights.projection_weights.shape == (8, performance_rnn.events.EVENT_SIZE)
	assert all(k.dtype == numpy.float32 for k in weights.kernels)


def test_input_size () -> None:

	"""Conditioning width plus vocabulary width."""

	assert performance_rnn.weights.INPUT_SIZE == 21 + 388


def test_from_mapping_ignores_extra_names () -> None:

	tensors = _mapping()
	tensors["global_step"] = numpy.array(10)

	weights = performance_rnn.weights.ModelWeights.from_mapping(tensors)

	assert weights.hidden_sizes == [4, 4, 4]


def test_missing_tensor_raises () -> None:

	tensors = _mapping()
	del tensors["fully_connected/biases"]

	with pytest.raises(performance_rnn.weights.WeightsError, match="fully_connected/biases"):
		performance_rnn.weights.ModelWeights.from_mapping(tensors)


def test_bias_not_multiple_of_four_raises () -> None:

	tensors = _mapping()
	tensors["rnn/multi_rnn_cell/cell_1/basic_lstm_cell/bias"] = numpy.zeros(15)

	with pytest.raises(performance_rnn.weights.WeightsError, match="multiple of 4"):
		performance_rnn.weights.ModelWeights.from_mapping(tensors)


def test_kernel_width_mismatch_raises () -> None:

	"""A kernel trained for a different vocabulary is rejected at load time."""

	tensors = _mapping()
	tensors["rnn/multi_rnn_cell/cell_0/basic_lstm_cell/kernel"] = numpy.zeros((100, 16))

	with pytest.raises(performance_rnn.weights.WeightsError, match="Layer 0 kernel"):
		performance_rnn.weights.ModelWeights.from_mapping(tensors)


def test_projection_mismatch_raises () -> None:

	tensors = _mapping()
	tensors["fully_connected/weights"] = numpy.zeros((4, 300))

	with pytest.raises(performance_rnn.weights.WeightsError, match="Projection weights"):
		performance_rnn.weights.ModelWeights.from_mapping(tensors)


def test_weights_error_is_value_error () -> None:

	assert issubclass(performance_rnn.weights.WeightsError, ValueError)


def test_load_npz (tmp_path: pathlib.Path) -> None:

	"""Weights saved as an npz archive keyed by tensor name load back unchanged."""

	original = performance_rnn.weights.ModelWeights.random(hidden_sizes=(4, 4, 4), seed=3)
	path = tmp_path / "weights.npz"
	numpy.savez(path, **original.as_mapping())

	loaded = performance_rnn.weights.ModelWeights.load_npz(path)

	numpy.testing.assert_array_equal(loaded.kernels[2], original.kernels[2])
	numpy.testing.assert_array_equal(loaded.projection_biases, original.projection_biases)


def test_random_requires_three_layers () -> None:

	with pytest.raises(performance_rnn.weights.WeightsError):
		performance_rnn.weights.ModelWeights.random(hidden_sizes=(8, 8))
