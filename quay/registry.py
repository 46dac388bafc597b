from __future__ import annotations

from typing import Callable

from .types import Handler


class Registry:
    """Maps job types to the handlers that process them.

    Registering a type twice replaces the earlier handler. There is no way to
    unregister a type; jobs of an unknown type fail when they are dispatched.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def __contains__(self, type: str) -> bool:
        return type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    @property
    def types(self) -> list[str]:
        return sorted(self._handlers)

    def register(self, type: str, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError(f"handler for {type!r} must be callable")

        self._handlers[type] = handler

    def lookup(self, type: str) -> Handler | None:
        return self._handlers.get(type)

    def handler(self, type: str) -> Callable[[Handler], Handler]:
        """Decorate a function to register it as the handler for ``type``.

        Example:
            >>> registry = Registry()

            >>> @registry.handler("send_email")
            ... async def send_email(job):
            ...     return await mailer.deliver(job.data["to"])
        """

        def decorate(func: Handler) -> Handler:
            self.register(type, func)

            return func

        return decorate
