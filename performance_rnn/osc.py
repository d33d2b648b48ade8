"""OSC control surface for a running performance.

Start the server with ``await OscServer(session).start()``.  It listens on a
UDP port (default 9000) for control messages and sends note and reset
notifications to a target host/port (default 127.0.0.1:9001), so an
external UI or visualiser can drive and follow the session.

Built-in Receive Handlers
─────────────────────────
- ``/density <int>``: Select a note density bin
- ``/histogram <int> x 12``: Set the pitch-class histogram
- ``/key <name> [major|minor]``: Histogram for a key
- ``/chord <name> <degree> [major|minor]``: Histogram for a triad in a key
- ``/gain <float>``: Set velocity gain
- ``/conditioning <0|1>``: Turn conditioning off or on
- ``/reset``, ``/pause``, ``/resume``: Transport

Built-in Send Events
────────────────────
- ``/note_on <pitch> <time> <velocity>``
- ``/note_off <pitch> <time>``
- ``/reset <loop_id>``
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import performance_rnn.histograms

if typing.TYPE_CHECKING:
	from performance_rnn.session import PerformanceSession


logger = logging.getLogger(__name__)


class OscServer:

	"""Async OSC server/client for bi-directional communication."""

	def __init__ (
		self,
		session: "PerformanceSession",
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		self._session = session
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		self._dispatcher.map("/density", self._handle_density)
		self._dispatcher.map("/histogram", self._handle_histogram)
		self._dispatcher.map("/key", self._handle_key)
		self._dispatcher.map("/chord", self._handle_chord)
		self._dispatcher.map("/gain", self._handle_gain)
		self._dispatcher.map("/conditioning", self._handle_conditioning)
		self._dispatcher.map("/reset", self._handle_transport)
		self._dispatcher.map("/pause", self._handle_transport)
		self._dispatcher.map("/resume", self._handle_transport)

		session.events.on("note_on", self._on_note_on)
		session.events.on("note_off", self._on_note_off)
		session.events.on("reset", self._on_reset)


	async def start (self) -> None:

		"""Start the OSC server and client."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		logger.info(f"OSC listening on :{self._receive_port}, sending to {self._send_host}:{self._send_port}")


	async def stop (self) -> None:

		"""Stop the OSC server."""

		if self._transport:
			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")

		self._client = None


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message.  Failures are logged, never raised into the session."""

		if self._client:
			try:
				self._client.send_message(address, args)
			except Exception as e:
				logger.warning(f"OSC send error: {e}")


	# Session listeners

	def _on_note_on (self, pitch: int, time: float, velocity: float) -> None:
		self.send("/note_on", pitch, float(time), float(velocity))

	def _on_note_off (self, pitch: int, time: float) -> None:
		self.send("/note_off", pitch, float(time))

	def _on_reset (self, loop_id: int) -> None:
		self.send("/reset", loop_id)


	# Handlers

	def _handle_density (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			self._session.set_note_density(int(args[0]))
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC density argument: {args[0]}")

	def _handle_histogram (self, address: str, *args: typing.Any) -> None:
		try:
			self._session.set_pitch_histogram([int(a) for a in args])
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC histogram arguments: {args}")

	def _handle_key (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		mode = str(args[1]) if len(args) > 1 else "major"
		try:
			self._session.set_pitch_histogram(performance_rnn.histograms.key_histogram(str(args[0]), mode))
		except ValueError as e:
			logger.warning(f"Invalid OSC key arguments: {e}")

	def _handle_chord (self, address: str, *args: typing.Any) -> None:
		if len(args) < 2:
			return
		mode = str(args[2]) if len(args) > 2 else "major"
		try:
			self._session.set_pitch_histogram(performance_rnn.histograms.chord_histogram(str(args[0]), int(args[1]), mode))
		except (ValueError, TypeError) as e:
			logger.warning(f"Invalid OSC chord arguments: {e}")

	def _handle_gain (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			self._session.set_gain(float(args[0]))
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC gain argument: {args[0]}")

	def _handle_conditioning (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			enabled = int(args[0]) != 0
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC conditioning argument: {args[0]}")
			return
		self._session.set_conditioned(enabled)

	def _handle_transport (self, address: str, *args: typing.Any) -> None:
		# address is one of /reset, /pause, /resume
		if address == "/reset":
			self._session.reset()
		elif address == "/pause":
			self._session.pause()
		elif address == "/resume":
			self._session.resume()
