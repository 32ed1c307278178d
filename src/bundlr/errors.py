"""
Exception hierarchy for the Bundlr client.
"""

from __future__ import annotations

from enum import Enum


class BundlrError(Exception):
    """Base class for all errors raised by this package."""


class ConstructionError(BundlrError):
    """Invalid input while building a chain or bundle transaction."""


class ConfigurationError(BundlrError):
    """Missing or invalid client configuration (wallet, deposit address, currency)."""


class ChainError(BundlrError):
    """
    Failure talking to a currency backend's chain.

    Transient errors are safe to retry (the confirmation poller keeps looping
    on them); fatal errors must be surfaced.
    """

    transient = False


class TxNotFoundError(ChainError):
    """The chain does not know the transaction (yet)."""

    transient = True


class ChainUnavailableError(ChainError):
    """The chain node could not be reached or answered with a server error."""

    transient = True


class TxRejectedError(ChainError):
    """The chain rejected or invalidated the transaction."""


class InsufficientFundsError(TxRejectedError):
    pass


class ConfirmationTimeoutError(ChainError):
    """The transaction did not reach the confirmation threshold in time."""


class RelayError(BundlrError):
    """Non-success status or unparsable response from the relay."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class FundingStep(str, Enum):
    RESOLVE_ADDRESS = "resolve_address"
    FEE = "fee"
    CREATE_TX = "create_tx"
    SEND_TX = "send_tx"
    CONFIRMATION = "confirmation"
    NOTIFY_RELAY = "notify_relay"


class FundingError(BundlrError):
    """
    Failure during the funding workflow.

    ``tx_id`` is set once the chain transaction is signed, so a caller can tell
    "nothing happened" apart from "possibly paid" or "paid but the relay was
    not notified" and retry only the notification.
    """

    def __init__(self, step: FundingStep, cause: BaseException, tx_id: str | None = None) -> None:
        message = f"Funding failed at step '{step.value}': {cause}"
        if tx_id:
            message += f" (chain tx {tx_id})"
        super().__init__(message)
        self.step = step
        self.cause = cause
        self.tx_id = tx_id
