"""Utility functions for ledger-bridge."""

from ledger_bridge.utils.parsing import (
    clean_description,
    decode_text,
    format_amount,
    parse_amount,
    parse_date,
    quantize_amount,
    read_file,
)

__all__ = [
    "parse_date",
    "parse_amount",
    "format_amount",
    "quantize_amount",
    "clean_description",
    "decode_text",
    "read_file",
]
