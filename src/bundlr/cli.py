"""
Bundlr CLI - Inspect a relay, check balances, fund accounts and upload data.
"""

from __future__ import annotations

import asyncio
import json
import mimetypes
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

import typer
from loguru import logger
from pydantic import ValidationError

from bundlr.client import BundlrClient
from bundlr.config import BundlrSettings, create_currency
from bundlr.errors import BundlrError, FundingError, FundingStep
from bundlr.tags import Tag

app = typer.Typer(
    name="bundlr",
    help="Bundlr relay client",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def parse_tag(raw: str) -> Tag:
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise typer.BadParameter(f"Tags must look like name=value, got '{raw}'")
    return Tag(name, value)


@app.callback()
def main_callback(
    ctx: typer.Context,
    node_url: str | None = typer.Option(None, "--node-url", "-u", help="Relay node URL"),
    currency: str | None = typer.Option(
        None, "--currency", "-c", help="Currency: arweave | ethereum"
    ),
    wallet: Path | None = typer.Option(None, "--wallet", "-w", help="Arweave JWK wallet file"),
    private_key: str | None = typer.Option(None, "--private-key", help="Ethereum private key"),
    provider_url: str | None = typer.Option(
        None, "--provider-url", help="Arweave gateway or Ethereum RPC URL"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l"),
) -> None:
    overrides = {
        "node_url": node_url,
        "currency": currency,
        "wallet": wallet,
        "private_key": private_key,
        "provider_url": provider_url,
        "log_level": log_level,
    }
    try:
        settings = BundlrSettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    setup_logging(settings.log_level)
    ctx.obj = settings


async def _connect(settings: BundlrSettings) -> BundlrClient:
    currency = create_currency(settings)
    try:
        return await BundlrClient.connect(settings.node_url, currency)
    except BundlrError:
        await currency.close()
        raise


def _run(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except FundingError as e:
        logger.error(str(e))
        if e.step == FundingStep.SEND_TX and e.tx_id:
            logger.warning(f"Transaction {e.tx_id} may have been broadcast; check before retrying")
        elif e.step == FundingStep.NOTIFY_RELAY and e.tx_id:
            logger.warning(f"Funds were sent; retry with: bundlr notify {e.tx_id}")
        raise typer.Exit(1)
    except BundlrError as e:
        logger.error(str(e))
        raise typer.Exit(1)


@app.command()
def info(ctx: typer.Context) -> None:
    """Show the relay's public info."""
    settings: BundlrSettings = ctx.obj

    async def _info() -> None:
        pub_info = await BundlrClient.get_pub_info(settings.node_url)
        typer.echo(json.dumps(pub_info.model_dump(), indent=2))

    _run(_info())


@app.command()
def balance(
    ctx: typer.Context,
    address: str | None = typer.Argument(None, help="Address (default: own wallet)"),
) -> None:
    """Show the relay-held balance of an address."""
    settings: BundlrSettings = ctx.obj

    async def _balance() -> None:
        async with await _connect(settings) as client:
            amount = await client.get_balance(address)
            typer.echo(f"{amount} ({client.currency_type})")

    _run(_balance())


@app.command()
def fund(
    ctx: typer.Context,
    amount: int = typer.Argument(..., help="Amount in the chain's base unit"),
    multiplier: float | None = typer.Option(None, "--multiplier", "-m", help="Fee multiplier"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds to wait for confirmation"
    ),
) -> None:
    """Fund the relay balance of the configured wallet."""
    settings: BundlrSettings = ctx.obj

    async def _fund() -> None:
        async with await _connect(settings) as client:
            await client.fund(
                amount,
                multiplier=multiplier or settings.fee_multiplier,
                confirmation_timeout=timeout or settings.confirmation_timeout,
            )
            typer.echo(f"Funded {amount} ({client.currency_type})")

    _run(_fund())


@app.command()
def notify(
    ctx: typer.Context,
    tx_id: str = typer.Argument(..., help="Confirmed funding transaction id"),
) -> None:
    """Ask the relay to credit an already confirmed funding transaction."""
    settings: BundlrSettings = ctx.obj

    async def _notify() -> None:
        async with await _connect(settings) as client:
            await client.notify_funding(tx_id)
            typer.echo(f"Relay credited {tx_id}")

    _run(_notify())


@app.command()
def upload(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
    tag: list[str] = typer.Option([], "--tag", "-t", help="Tag as name=value (repeatable)"),
) -> None:
    """Sign a file as a bundle transaction and submit it to the relay."""
    settings: BundlrSettings = ctx.obj
    tags = [parse_tag(t) for t in tag]
    if not any(t.name.lower() == "content-type" for t in tags):
        content_type, _ = mimetypes.guess_type(file.name)
        if content_type:
            tags.insert(0, Tag("Content-Type", content_type))

    async def _upload() -> None:
        async with await _connect(settings) as client:
            tx = client.create_transaction_with_tags(file.read_bytes(), tags)
            ack = await client.send_transaction(tx)
            typer.echo(json.dumps({"id": tx.id, "ack": ack}, indent=2))

    _run(_upload())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
