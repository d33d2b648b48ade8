import typing

import numpy


class Sampler:

	"""
	Draws event indices from the categorical distribution given by logits.

	Always a true random draw, never argmax.  Pass ``seed`` (or a numpy
	``Generator``) to make the sequence of draws repeatable.
	"""

	def __init__ (self, seed: typing.Optional[int] = None, rng: typing.Optional[numpy.random.Generator] = None) -> None:

		if seed is not None and rng is not None:
			raise ValueError("Pass either seed or rng, not both")

		self.rng = rng if rng is not None else numpy.random.default_rng(seed)


	@staticmethod
	def probabilities (logits: numpy.ndarray) -> numpy.ndarray:

		"""Softmax in float64 so the probabilities sum to one for ``Generator.choice``."""

		values = numpy.asarray(logits, dtype=numpy.float64).reshape(-1)

		if values.size == 0:
			raise ValueError("Cannot sample from empty logits")

		if not numpy.all(numpy.isfinite(values)):
			raise ValueError("Logits contain non-finite values")

		exp = numpy.exp(values - values.max())

		return exp / exp.sum()


	def sample (self, logits: numpy.ndarray) -> int:

		"""Return one index drawn in proportion to ``softmax(logits)``."""

		probabilities = self.probabilities(logits)

		return int(self.rng.choice(probabilities.size, p=probabilities))
