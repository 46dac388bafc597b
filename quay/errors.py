class QuayError(Exception):
    """Base class for errors raised by quay."""


class HandlerNotFoundError(QuayError):
    def __init__(self, type: str) -> None:
        self.type = type

        super().__init__(f"No handler registered for job type: {type}")
