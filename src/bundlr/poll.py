"""
Confirmation polling for funding transactions.

A single loop serves every currency backend; chain differences are expressed
through the backend's confirmation policy attributes.
"""

from __future__ import annotations

import asyncio
from types import EllipsisType

from loguru import logger

from bundlr.currency.base import Currency
from bundlr.errors import ChainError, ConfirmationTimeoutError


async def await_confirmation(
    tx_id: str,
    currency: Currency,
    max_attempts: int | None | EllipsisType = ...,
) -> None:
    """
    Wait until ``tx_id`` has at least ``currency.min_confirmations``.

    Transient chain errors (transaction not found yet, node unreachable) are
    retried after ``currency.poll_interval`` seconds. Fatal chain errors are
    raised immediately.

    Args:
        tx_id: Chain transaction id
        currency: Backend to query
        max_attempts: Number of status queries before giving up. Omitted, the
            backend's ``max_poll_attempts`` applies. ``None`` polls until
            confirmed or cancelled, for callers that impose their own limit.

    Raises:
        ConfirmationTimeoutError: If the attempt budget runs out
        ChainError: On fatal chain errors
    """
    if max_attempts is ...:
        max_attempts = currency.max_poll_attempts
    required = currency.min_confirmations
    currency_name = currency.get_type().value

    attempt = 0
    while True:
        attempt += 1
        try:
            status = await currency.get_tx_status(tx_id)
        except ChainError as e:
            if not e.transient:
                logger.error(f"Confirmation of {tx_id} on {currency_name} failed: {e}")
                raise
            logger.debug(f"Status of {tx_id} unavailable ({e}), attempt {attempt}")
        else:
            if status.confirmations >= required:
                logger.info(
                    f"Transaction {tx_id} confirmed on {currency_name} "
                    f"({status.confirmations} confirmations, height {status.height})"
                )
                return
            logger.debug(
                f"Transaction {tx_id}: {status.confirmations}/{required} confirmations, "
                f"attempt {attempt}"
            )

        if max_attempts is not None and attempt >= max_attempts:
            raise ConfirmationTimeoutError(
                f"Transaction {tx_id} not confirmed after {attempt} attempts"
            )

        await asyncio.sleep(currency.poll_interval)
