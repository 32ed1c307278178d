"""
Base currency backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from bundlr.signers import Signer


class CurrencyType(str, Enum):
    ARWEAVE = "arweave"
    ETHEREUM = "ethereum"


@dataclass
class Tx:
    id: str
    from_address: str
    to_address: str
    amount: int
    fee: int
    block_height: int | None = None
    pending: bool = True
    confirmed: bool = False
    # Signed chain payload, ready for submission
    raw: bytes = b""


@dataclass
class TxStatus:
    confirmations: int
    height: int
    block_hash: str


class Currency(ABC):
    """
    Abstract currency backend.

    One implementation per chain. The funding workflow and the confirmation
    poller only use the methods and policy attributes declared here.
    """

    # Confirmation policy, overridden per chain
    min_confirmations: int = 1
    poll_interval: float = 10.0
    max_poll_attempts: int | None = 360

    @abstractmethod
    def get_type(self) -> CurrencyType:
        """Currency key used for relay endpoints and deposit addresses"""

    @abstractmethod
    def needs_fee(self) -> bool:
        """Whether a fee must be estimated before building a transaction"""

    @abstractmethod
    async def get_fee(self, amount: int, recipient: str, multiplier: float) -> int:
        """Estimate the fee (in base units) to send amount to recipient"""

    @abstractmethod
    async def create_tx(self, amount: int, recipient: str, fee: int) -> Tx:
        """Build a signed transaction. Raises ConstructionError on invalid input"""

    @abstractmethod
    async def send_tx(self, tx: Tx) -> Tx:
        """Submit a transaction, returning it with its chain id assigned"""

    @abstractmethod
    async def get_tx_status(self, tx_id: str) -> TxStatus:
        """Query confirmation status. Raises TxNotFoundError while unknown"""

    @abstractmethod
    def get_signer(self) -> Signer:
        """The backend's signer instance for bundle transactions"""

    @abstractmethod
    def get_address(self) -> str:
        """Address of the backend's own wallet"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
