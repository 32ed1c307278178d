"""
Configuration management using pydantic-settings.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bundlr.currency.arweave import DEFAULT_GATEWAY_URL, Arweave
from bundlr.currency.base import Currency, CurrencyType
from bundlr.currency.ethereum import Ethereum
from bundlr.errors import ConfigurationError


class BundlrSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BUNDLR_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    node_url: str = "https://node1.bundlr.network"
    currency: CurrencyType = CurrencyType.ARWEAVE

    # Arweave JWK wallet file
    wallet: Path | None = None
    # Hex private key for Ethereum
    private_key: str | None = None
    # Chain endpoint: Arweave gateway or Ethereum JSON-RPC URL
    provider_url: str | None = None

    fee_multiplier: float = Field(default=1.0, gt=0)
    confirmation_timeout: float | None = Field(default=None, gt=0)

    log_level: str = "INFO"


def get_settings() -> BundlrSettings:
    return BundlrSettings()


def create_currency(settings: BundlrSettings) -> Currency:
    """
    Build the currency backend selected by ``settings``.

    Raises:
        ConfigurationError: If the wallet material for the currency is missing
    """
    if settings.currency == CurrencyType.ARWEAVE:
        if settings.wallet is None:
            raise ConfigurationError("Arweave requires a wallet file (BUNDLR_WALLET)")
        return Arweave.from_wallet(
            settings.wallet, gateway_url=settings.provider_url or DEFAULT_GATEWAY_URL
        )

    if settings.currency == CurrencyType.ETHEREUM:
        if not settings.private_key:
            raise ConfigurationError("Ethereum requires a private key (BUNDLR_PRIVATE_KEY)")
        if not settings.provider_url:
            raise ConfigurationError("Ethereum requires an RPC URL (BUNDLR_PROVIDER_URL)")
        return Ethereum(settings.private_key, rpc_url=settings.provider_url)

    raise ConfigurationError(f"Unsupported currency: {settings.currency}")
