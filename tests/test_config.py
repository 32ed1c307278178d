"""
Tests for bundlr.config
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from bundlr.config import BundlrSettings, create_currency
from bundlr.currency import Arweave, CurrencyType, Ethereum
from bundlr.errors import ConfigurationError

from helpers import TEST_ETH_KEY, rsa_to_jwk

ENV_VARS = [
    "BUNDLR_NODE_URL",
    "BUNDLR_CURRENCY",
    "BUNDLR_WALLET",
    "BUNDLR_PRIVATE_KEY",
    "BUNDLR_PROVIDER_URL",
    "BUNDLR_FEE_MULTIPLIER",
    "BUNDLR_CONFIRMATION_TIMEOUT",
    "BUNDLR_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the way
    monkeypatch.chdir(tmp_path)


def test_defaults():
    settings = BundlrSettings()
    assert settings.node_url == "https://node1.bundlr.network"
    assert settings.currency == CurrencyType.ARWEAVE
    assert settings.fee_multiplier == 1.0
    assert settings.confirmation_timeout is None
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BUNDLR_NODE_URL", "http://localhost:10000")
    monkeypatch.setenv("BUNDLR_CURRENCY", "ethereum")
    monkeypatch.setenv("BUNDLR_FEE_MULTIPLIER", "1.5")
    monkeypatch.setenv("BUNDLR_CONFIRMATION_TIMEOUT", "600")

    settings = BundlrSettings()

    assert settings.node_url == "http://localhost:10000"
    assert settings.currency == CurrencyType.ETHEREUM
    assert settings.fee_multiplier == 1.5
    assert settings.confirmation_timeout == 600


def test_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text("BUNDLR_CURRENCY=ethereum\n")
    assert BundlrSettings().currency == CurrencyType.ETHEREUM


@pytest.mark.parametrize(
    "kwargs",
    [{"currency": "dogecoin"}, {"fee_multiplier": 0}, {"confirmation_timeout": -1}],
)
def test_invalid_values(kwargs):
    with pytest.raises(ValidationError):
        BundlrSettings(**kwargs)


class TestCreateCurrency:
    def test_arweave_requires_wallet(self):
        with pytest.raises(ConfigurationError, match="wallet"):
            create_currency(BundlrSettings(currency="arweave"))

    def test_arweave_wallet_file(self, tmp_path, rsa_key, arweave_signer):
        wallet = tmp_path / "wallet.json"
        wallet.write_text(json.dumps(rsa_to_jwk(rsa_key)))

        currency = create_currency(
            BundlrSettings(currency="arweave", wallet=wallet, provider_url="http://gw.test")
        )

        assert isinstance(currency, Arweave)
        assert currency.gateway_url == "http://gw.test"
        assert currency.get_address() == arweave_signer.address

    def test_arweave_unreadable_wallet(self, tmp_path):
        with pytest.raises(ConfigurationError):
            create_currency(BundlrSettings(currency="arweave", wallet=tmp_path / "missing.json"))

    def test_ethereum_requires_key(self):
        with pytest.raises(ConfigurationError, match="private key"):
            create_currency(BundlrSettings(currency="ethereum", provider_url="http://eth.test"))

    def test_ethereum_requires_rpc_url(self):
        with pytest.raises(ConfigurationError, match="RPC URL"):
            create_currency(BundlrSettings(currency="ethereum", private_key=TEST_ETH_KEY))

    def test_ethereum(self):
        currency = create_currency(
            BundlrSettings(
                currency="ethereum", private_key=TEST_ETH_KEY, provider_url="http://eth.test/"
            )
        )
        assert isinstance(currency, Ethereum)
        assert currency.rpc_url == "http://eth.test"
        assert currency.get_type() == CurrencyType.ETHEREUM
