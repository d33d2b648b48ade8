"""Command-line entry point.

Usage:
    python -m performance_rnn [--weights FILE.npz | --random-weights]
                              [--config config.yaml] [--midi-out NAME]
                              [--midi-in NAME] [--osc-port PORT]
                              [--record FILE.mid] [--seed N]
"""

import argparse
import asyncio
import logging
import signal
import typing

import performance_rnn.config
import performance_rnn.midi_input
import performance_rnn.midi_utils
import performance_rnn.osc
import performance_rnn.recording
import performance_rnn.session
import performance_rnn.sinks
import performance_rnn.weights


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def parse_args (argv: typing.Optional[typing.Sequence[str]] = None) -> argparse.Namespace:

	parser = argparse.ArgumentParser(prog="performance_rnn", description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)

	source = parser.add_mutually_exclusive_group(required=True)
	source.add_argument("--weights", help="Model weights as a .npz archive keyed by tensor name")
	source.add_argument("--random-weights", action="store_true", help="Use random weights (for testing the pipeline)")

	parser.add_argument("--config", default=None, help="YAML configuration file")
	parser.add_argument("--midi-out", default=None, help="MIDI output device name")
	parser.add_argument("--midi-in", default=None, help="MIDI input device name for live conditioning")
	parser.add_argument("--osc-port", type=int, default=None, help="Listen for OSC control on this port")
	parser.add_argument("--record", default=None, help="Record the performance to this MIDI file")
	parser.add_argument("--seed", type=int, default=None, help="Sampler seed (overrides the config file)")

	return parser.parse_args(argv)


async def run (args: argparse.Namespace) -> None:

	"""
	Run a session until a stop signal is received.
	"""

	config = performance_rnn.config.load_config(args.config)

	if args.seed is not None:
		config.seed = args.seed

	if args.random_weights:
		weights = performance_rnn.weights.ModelWeights.random(seed=config.seed)
	else:
		weights = performance_rnn.weights.ModelWeights.load_npz(args.weights)

	session = performance_rnn.session.PerformanceSession(
		weights = weights,
		sink = performance_rnn.sinks.SilentSink(),
		config = config,
		midi_out = performance_rnn.midi_utils.open_output(args.midi_out)
	)

	recorder = performance_rnn.recording.PerformanceRecorder(session, args.record) if args.record else None
	conditioner: typing.Optional[performance_rnn.midi_input.MidiInputConditioner] = None
	osc_server: typing.Optional[performance_rnn.osc.OscServer] = None

	if args.midi_in:
		conditioner = performance_rnn.midi_input.MidiInputConditioner(session)
		if not await conditioner.open(args.midi_in):
			logger.warning("Continuing without MIDI input")
			conditioner = None

	if args.osc_port is not None:
		osc_server = performance_rnn.osc.OscServer(session, receive_port=args.osc_port)
		await osc_server.start()

	logger.info("Playing. Press Ctrl+C to stop.")

	loop = asyncio.get_running_loop()
	play_task = asyncio.create_task(session.play())

	def _request_stop () -> None:

		"""
		Signal handler to request a clean shutdown.
		"""

		play_task.cancel()

	for sig in (signal.SIGINT, signal.SIGTERM):
		loop.add_signal_handler(sig, _request_stop)

	try:
		await play_task
	except asyncio.CancelledError:
		await session.stop()
	finally:
		if conditioner is not None:
			conditioner.close()
		if osc_server is not None:
			await osc_server.stop()
		if recorder is not None:
			recorder.save()


def main (argv: typing.Optional[typing.Sequence[str]] = None) -> None:

	"""
	Main entry point for the performance_rnn application.
	"""

	logger.info("performance_rnn starting...")

	asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
	main()
