import typing


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Synchronous named-event dispatch.

	Session ticks run synchronously on the event loop, so listeners are
	plain callables invoked in registration order before ``emit`` returns.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		self._listeners.setdefault(event_name, []).append(callback)


	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if callback not in self._listeners.get(event_name, []):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def has_listeners (self, event_name: str) -> bool:

		return bool(self._listeners.get(event_name))


	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call every listener for ``event_name`` with the given arguments.
		"""

		# Copy so a listener may unregister itself mid-dispatch.
		for callback in list(self._listeners.get(event_name, [])):
			callback(*args, **kwargs)
