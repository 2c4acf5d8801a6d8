"""Domain exceptions used across API and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any


def compose_error_message(*, cause: str, action: str) -> str:
    """Build a user-facing error message with cause and corrective action."""

    return f"Cause: {cause} Action: {action}"


@dataclass(slots=True)
class DomainError(Exception):
    """Base exception for predictable domain failures."""

    code: str
    message: str
    status_code: int
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class AuthenticationRequiredError(DomainError):
    """Raised when no usable identity is available for an owner operation."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="AUTHENTICATION_REQUIRED",
            message=message
            or compose_error_message(
                cause="No verified identity or valid guest device id was provided.",
                action="Sign in or send a valid guest device id and retry.",
            ),
            status_code=HTTPStatus.UNAUTHORIZED,
            details=details or {},
        )


class InvalidRequestError(DomainError):
    """Raised when user sends semantically invalid input."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_REQUEST",
            message=message
            or compose_error_message(
                cause="Request data violates business rules.",
                action="Adjust the input fields and try again.",
            ),
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class ReceiptNotFoundError(DomainError):
    """Raised when a mutation targets a missing or archived receipt."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="RECEIPT_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="No active receipt matches the provided share code.",
                action="Check the six digit code with the host and retry.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class ItemNotFoundError(DomainError):
    """Raised when a claim references an item key absent from the receipt."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="ITEM_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="The item key does not match any current receipt item.",
                action="Reload the receipt and claim one of the listed items.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class ParticipantNotFoundError(DomainError):
    """Raised when the target participant is not on the receipt roster."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="PARTICIPANT_NOT_FOUND",
            message=message
            or compose_error_message(
                cause="The participant is not on this receipt.",
                action="Join the receipt first or reload the participant list.",
            ),
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class HostOnlyActionError(DomainError):
    """Raised when a non-owner attempts a host-only action."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="HOST_ONLY_ACTION",
            message=message
            or compose_error_message(
                cause="Only the host can perform this action.",
                action="Ask the receipt host to perform it.",
            ),
            status_code=HTTPStatus.FORBIDDEN,
            details=details or {},
        )


class SettlementFinalizedError(DomainError):
    """Raised when a claiming-phase action hits a finalized receipt."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="SETTLEMENT_FINALIZED",
            message=message
            or compose_error_message(
                cause="This split has already been finalized.",
                action="Ask the host to resubmit the receipt to reopen claiming.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class ClaimsLockedError(DomainError):
    """Raised when a submitted participant tries to change claims."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CLAIMS_LOCKED",
            message=message
            or compose_error_message(
                cause="Claims are locked after submission.",
                action="Unsubmit first, then change your claims.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class SettlementNotReadyError(DomainError):
    """Raised when a settlement step runs before its preconditions hold."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="SETTLEMENT_NOT_READY",
            message=message
            or compose_error_message(
                cause="The split is not ready for this settlement step.",
                action="Complete the pending claiming or payment steps and retry.",
            ),
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            details=details or {},
        )


class BillAllowanceExhaustedError(DomainError):
    """Raised when neither a free slot nor a credit can cover a new receipt."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="BILL_ALLOWANCE_EXHAUSTED",
            message=message
            or compose_error_message(
                cause=(
                    "Free receipts for this period are used up "
                    "and no credits remain."
                ),
                action="Buy bill credits or wait for the next billing period.",
            ),
            status_code=HTTPStatus.PAYMENT_REQUIRED,
            details=details or {},
        )


class UnknownCreditProductError(DomainError):
    """Raised when a credit purchase references an unknown product id."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="UNKNOWN_BILL_CREDIT_PRODUCT",
            message=message
            or compose_error_message(
                cause="The purchased product is not a known bill credit pack.",
                action="Send one of the configured bill credit product ids.",
            ),
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class PurchaseAlreadyRedeemedError(DomainError):
    """Raised when a store transaction was redeemed by another account."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="PURCHASE_ALREADY_REDEEMED",
            message=message
            or compose_error_message(
                cause="This purchase was already redeemed by another account.",
                action="Restore purchases from the account that bought them.",
            ),
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )


class CodeSpaceExhaustedError(DomainError):
    """Raised when no unused share code was found within the allowed attempts."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CODE_SPACE_EXHAUSTED",
            message=message
            or compose_error_message(
                cause="Could not generate a unique share code.",
                action="Retry the request; contact support if it keeps failing.",
            ),
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            details=details or {},
        )
