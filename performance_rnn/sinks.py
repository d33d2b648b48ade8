"""Audio sink interface.

The synthesiser itself is outside this package.  The session only needs
something that can start and stop a key at a point in time, and that owns
the authoritative playback clock.  Piano time is anchored to ``now()`` on
every reset, so all times passed to ``key_down``/``key_up`` are on the
sink's own clock.
"""

import logging
import time
import typing


logger = logging.getLogger(__name__)


@typing.runtime_checkable
class AudioSink (typing.Protocol):

	"""Protocol for anything that can play the generated performance."""

	def key_down (self, pitch: int, time: float, velocity: float) -> None:

		"""Start ``pitch`` at ``time`` with a velocity between 0.0 and 1.0."""

		...


	def key_up (self, pitch: int, time: float) -> None:

		"""Release ``pitch`` at ``time``."""

		...


	def now (self) -> float:

		"""Current time on the playback clock, in seconds."""

		...


class SilentSink:

	"""
	A sink that plays nothing and keeps time with ``time.perf_counter``.

	Used when the only output is an external MIDI device, or for headless
	generation runs.
	"""

	def key_down (self, pitch: int, time: float, velocity: float) -> None:

		logger.debug(f"key_down {pitch} at {time:.3f} velocity {velocity:.2f}")


	def key_up (self, pitch: int, time: float) -> None:

		logger.debug(f"key_up {pitch} at {time:.3f}")


	def now (self) -> float:

		return time.perf_counter()
