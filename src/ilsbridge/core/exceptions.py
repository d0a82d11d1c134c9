class BaseIlsBridgeException(Exception):
    """Base class for all Exceptions raised by ilsbridge."""

    def __init__(self, message: str | None = None):
        """Initializes a new instance of BaseIlsBridgeException class

        :param message: String containing description of the exception that occurred
        """
        super().__init__(message)
        self.message = message


class IlsBridgeValueError(BaseIlsBridgeException, ValueError): ...


class IntegrationException(BaseIlsBridgeException):
    """An exception that happens when the connection to the library
    platform is broken.

    This may be because communication failed
    (RemoteIntegrationException), or because local configuration is
    missing or obviously wrong (CannotLoadConfiguration).
    """

    def __init__(self, message: str | None, debug_message: str | None = None) -> None:
        """Constructor.

        :param message: The normal message passed to any Exception
        constructor.

        :param debug_message: An extra human-readable explanation of the
        problem, meant for operators rather than patrons. This may include
        the URL, parameters and body of the call that failed.
        """
        super().__init__(message)
        self.debug_message = debug_message
