"""Exceptions for django-kvrelay.

This module defines exceptions that may be raised while building connections
or dispatching commands. Errors raised by the wire client itself (wrong-type
replies, dropped sockets, ...) are never wrapped by the dispatcher: they
propagate with their original type once the single retry is exhausted.
"""


class InvalidArgumentError(ValueError):
    """Raised for malformed caller input.

    This can occur when:
    - A subscription is requested without any usable channel name
    - The subscription method is not ``subscribe`` or ``psubscribe``
    - A channel argument is neither a string nor a list

    These errors are raised before anything reaches the wire client and are
    never retried.
    """


class InvalidCommandError(InvalidArgumentError):
    """Raised when a command name cannot be normalized to a non-empty string.

    Attributes:
        method: The rejected command name value.

    Example:
        Handling a bad command name::

            from django_kvrelay import get_connection
            from django_kvrelay.exceptions import InvalidCommandError

            try:
                get_connection().execute(None)
            except InvalidCommandError as e:
                logger.error(f"Rejected command: {e.method!r}")
    """

    def __init__(self, method: object) -> None:
        self.method = method
        super().__init__(f"Unsupported command method type [{type(method).__name__}].")


class ConnectionEstablishmentError(ConnectionError):
    """Raised when a connection to the store cannot be established.

    The underlying cause is preserved as ``__cause__``. This is raised when
    the client library is not installed, when the wire client's ``connect``
    raises, or when it reports failure by returning ``False``.
    """


class NotSupportedError(Exception):
    """Raised when an operation is not supported by a wire client.

    Attributes:
        operation: The operation that is not supported.
        backend: Optional name of the client that doesn't support it.

    Example:
        Handling unsupported authentication modes::

            from django_kvrelay.exceptions import NotSupportedError

            try:
                connection = get_connection("elasticache")
            except NotSupportedError as e:
                logger.error(f"{e.operation} needs a credential provider factory")
    """

    def __init__(self, operation: str, backend: str | None = None) -> None:
        self.operation = operation
        self.backend = backend
        msg = f"Operation '{operation}' is not supported"
        if backend:
            msg += f" by {backend}"
        super().__init__(msg)

    def __str__(self) -> str:
        msg = f"Operation '{self.operation}' is not supported"
        if self.backend:
            msg += f" by {self.backend}"
        return msg
