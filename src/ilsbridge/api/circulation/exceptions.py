from abc import ABC, abstractmethod

from ilsbridge.core.exceptions import IntegrationException


class CirculationException(IntegrationException, ABC):
    """An exception occurred when carrying out a circulation operation."""

    def __init__(
        self, message: str | None = None, debug_info: str | None = None
    ) -> None:
        super().__init__(message or self.__class__.__name__, debug_info)
        self.message = message

    @property
    def detail(self) -> str | None:
        return self.message

    @property
    @abstractmethod
    def status(self) -> str:
        """A short status key describing the failed operation. Discovery
        front ends translate these into patron-facing text."""


class PatronAuthorizationFailedException(CirculationException):
    @property
    def status(self) -> str:
        return "authentication_error_invalid"


class CannotHold(CirculationException):
    @property
    def status(self) -> str:
        return "hold_error_fail"


class CannotReleaseHold(CirculationException):
    @property
    def status(self) -> str:
        return "hold_cancel_fail"


class CannotRenew(CirculationException):
    """The patron can't renew their loan on this item.

    Probably because it's not available for renewal.
    """

    @property
    def status(self) -> str:
        return "renew_fail"


class CannotCreatePatron(CirculationException):
    """A new patron account could not be created, usually because the
    settings for new accounts are incomplete."""

    @property
    def status(self) -> str:
        return "patron_create_fail"
