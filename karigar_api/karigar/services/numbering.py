"""
Per-merchant document numbering.

Numbers are a prefix plus a zero-padded counter: OD000001 (orders), MO000001
(manufacturing orders), TAG000001 (inventory tags), PR000001 (procurement requests),
INV000001 (invoices).
Order items get suborder ids derived from their order: S-OD000001-01.
"""

from __future__ import annotations

import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.db.models.activity import NumberSequence

logger = logging.getLogger(__name__)

ORDER = "order"
MANUFACTURING_ORDER = "manufacturing_order"
TAG = "tag"
PROCUREMENT_REQUEST = "procurement_request"
INVOICE = "invoice"

PREFIXES = {
    ORDER: "OD",
    MANUFACTURING_ORDER: "MO",
    TAG: "TAG",
    PROCUREMENT_REQUEST: "PR",
    INVOICE: "INV",
}

NUMBER_WIDTH = 6


# PUBLIC_INTERFACE
def format_number(sequence: str, value: int) -> str:
    """Render a counter value for the given sequence, e.g. ('order', 12) -> 'OD000012'."""
    if sequence not in PREFIXES:
        raise ValueError(f"Unknown sequence '{sequence}'")
    if value < 1:
        raise ValueError("Sequence values start at 1")
    return f"{PREFIXES[sequence]}{value:0{NUMBER_WIDTH}d}"


# PUBLIC_INTERFACE
def format_suborder_id(order_number: str, index: int) -> str:
    """Suborder id for the index-th (1-based) item of an order."""
    return f"S-{order_number}-{index:02d}"


# PUBLIC_INTERFACE
async def next_value(session: AsyncSession, sequence: str) -> int:
    """
    Atomically advance and return the merchant's counter for `sequence`.

    The upsert runs in the caller's transaction; the merchant comes from the
    session's merchant context, so concurrent callers never receive the same value.
    """
    stmt = (
        pg_insert(NumberSequence)
        .values(name=sequence, last_value=1)
        .on_conflict_do_update(
            constraint="uq_number_sequences_merchant_name",
            set_={"last_value": NumberSequence.last_value + 1},
        )
        .returning(NumberSequence.last_value)
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


# PUBLIC_INTERFACE
async def next_number(session: AsyncSession, sequence: str) -> str:
    """Allocate the next formatted number for `sequence`."""
    number = format_number(sequence, await next_value(session, sequence))
    logger.debug("Allocated %s number %s", sequence, number)
    return number
