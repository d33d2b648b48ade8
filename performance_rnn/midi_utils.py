import asyncio
import logging
import time
import typing

import mido

logger = logging.getLogger(__name__)


@typing.runtime_checkable
class MidiOutput(typing.Protocol):
    """
    Capability interface for an optional MIDI output device.

    `data` is a raw 3-byte channel message (status, note, velocity).
    `timestamp` is a `time.perf_counter()` reading at which the message
    should sound, or None to send immediately.
    """

    def send(self, data: typing.Sequence[int], timestamp: typing.Optional[float] = None) -> None:
        ...

    def close(self) -> None:
        ...


class NullMidiOutput:
    """Stand-in used when no MIDI output device is available."""

    def send(self, data: typing.Sequence[int], timestamp: typing.Optional[float] = None) -> None:
        return None

    def close(self) -> None:
        return None


class MidoMidiOutput:
    """
    Adapter from raw note bytes to an open mido output port.

    mido sends immediately, so messages stamped in the future are held back
    with `loop.call_later` on the running event loop. Send failures are
    logged and swallowed - a flaky device must never stop the performance.
    Closing the output sends anything still held back, so no note-off is
    lost on shutdown.
    """

    def __init__(self, port: typing.Any, clock: typing.Callable[[], float] = time.perf_counter) -> None:
        self.port = port
        self.clock = clock
        self._pending: typing.Dict[asyncio.TimerHandle, mido.Message] = {}

    def send(self, data: typing.Sequence[int], timestamp: typing.Optional[float] = None) -> None:
        try:
            message = mido.Message.from_bytes(list(data))
        except (ValueError, TypeError):
            logger.exception(f"Invalid MIDI bytes {list(data)}")
            return

        delay = 0.0 if timestamp is None else timestamp - self.clock()

        if delay <= 0:
            self._send_now(message)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to defer on: late is better than never.
            self._send_now(message)
            return

        handle: typing.Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            if handle is not None:
                self._pending.pop(handle, None)
            self._send_now(message)

        handle = loop.call_later(delay, fire)
        self._pending[handle] = message

    def _send_now(self, message: mido.Message) -> None:
        try:
            self.port.send(message)
        except Exception:
            logger.exception("MIDI send failed (device may be disconnected)")

    def flush(self) -> None:
        """Send every held-back message now, in timestamp order."""
        pending = sorted(self._pending.items(), key=lambda item: item[0].when())
        self._pending.clear()

        for handle, message in pending:
            handle.cancel()
            self._send_now(message)

    def close(self) -> None:
        if self._pending:
            logger.info(f"Sending {len(self._pending)} held-back MIDI messages before closing")
        self.flush()

        try:
            self.port.close()
        except Exception as e:
            logger.error(f"Failed to close MIDI output: {e}")


def select_output_device(device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:
    """
    Select and open a MIDI output port.

    MIDI output is optional: when `device_name` is None no port is opened.
    If the named device does not exist, logs the available devices and
    returns None.

    Returns:
        A tuple of (device_name, midi_out_port) or (None, None) on failure.
    """
    if device_name is None:
        return None, None

    try:
        outputs = mido.get_output_names()
        logger.info(f"Available MIDI outputs: {outputs}")

        if device_name not in outputs:
            logger.error(
                f"MIDI output device '{device_name}' not found. "
                f"Available devices: {outputs}"
            )
            return None, None

        midi_out = mido.open_output(device_name)
        logger.info(f"Opened MIDI output: {device_name}")
        return device_name, midi_out

    except Exception as e:
        logger.error(f"Failed to open MIDI output: {e}")
        return None, None


def open_output(device_name: typing.Optional[str] = None, clock: typing.Callable[[], float] = time.perf_counter) -> MidiOutput:
    """Open a MIDI output adapter, or the no-op stub when no device can be used."""
    _, port = select_output_device(device_name)

    if port is None:
        return NullMidiOutput()

    return MidoMidiOutput(port, clock=clock)


def select_input_device(device_name: typing.Optional[str] = None, callback: typing.Optional[typing.Callable] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:
    """
    Select and open a MIDI input device.

    If `device_name` is provided, attempts to open that specific device.
    If `device_name` is None, returns None without prompting (input is optional).

    If the precise name is not found, this function falls back to the first available input
    and logs a warning, which is useful for cross-platform script portability.

    Returns:
        A tuple of (device_name, midi_in_object) or (None, None) on failure.
    """
    if device_name is None:
        return None, None

    try:
        inputs = mido.get_input_names()
        logger.info(f"Available MIDI inputs: {inputs}")

        target = device_name

        if target not in inputs:
            logger.warning(f"MIDI input device '{target}' not found.")
            if inputs:
                target = inputs[0]
                logger.warning(f"Fallback to: {target}")
            else:
                return None, None

        midi_in = mido.open_input(target, callback=callback)
        logger.info(f"Opened MIDI input: {target}")
        return target, midi_in

    except Exception as e:
        logger.error(f"Failed to open MIDI input: {e}")
        return None, None
