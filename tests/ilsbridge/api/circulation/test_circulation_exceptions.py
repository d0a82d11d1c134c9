from __future__ import annotations

import pytest

from ilsbridge.api.circulation.exceptions import (
    CannotCreatePatron,
    CannotHold,
    CannotReleaseHold,
    CannotRenew,
    CirculationException,
    PatronAuthorizationFailedException,
)


class TestCirculationExceptions:
    @pytest.mark.parametrize(
        "exception, status",
        [
            (PatronAuthorizationFailedException, "authentication_error_invalid"),
            (CannotHold, "hold_error_fail"),
            (CannotReleaseHold, "hold_cancel_fail"),
            (CannotRenew, "renew_fail"),
            (CannotCreatePatron, "patron_create_fail"),
        ],
    )
    def test_status(
        self, exception: type[CirculationException], status: str
    ) -> None:
        assert exception().status == status
        assert exception("details").status == status

    def test_message(self) -> None:
        error = CannotRenew("Loan is not renewable", "debug info")
        assert error.message == "Loan is not renewable"
        assert error.detail == "Loan is not renewable"
        assert error.debug_message == "debug info"
        assert str(error) == "Loan is not renewable"

        # Without a message the class name is used.
        error = CannotHold()
        assert error.message is None
        assert str(error) == "CannotHold"
