"""Transaction model and origin note codec."""
from __future__ import annotations

from delegated_session.transaction.model import Transaction, TransactionType
from delegated_session.transaction.note import (
    MAX_ORIGIN_BYTES,
    decode_origin_note,
    encode_origin_note,
)

__all__ = [
    "MAX_ORIGIN_BYTES",
    "Transaction",
    "TransactionType",
    "decode_origin_note",
    "encode_origin_note",
]
