"""Conversions between the per-format statement records.

Every record type shares the ``Statement`` field surface, so a conversion
copies each field across. Source records are never modified.
"""

import dataclasses
from typing import TypeVar

from ledger_bridge.models import Camt053Statement, CsvStatement, Mt940Statement, Statement

S = TypeVar("S", bound=Statement)


def convert(statement: Statement, target_type: type[S]) -> S:
    """Copy every shared field of ``statement`` into a new ``target_type`` record."""
    values = {f.name: getattr(statement, f.name) for f in dataclasses.fields(Statement)}
    return target_type(**values)


def csv_to_mt940(statement: CsvStatement) -> Mt940Statement:
    return convert(statement, Mt940Statement)


def csv_to_camt053(statement: CsvStatement) -> Camt053Statement:
    return convert(statement, Camt053Statement)


def mt940_to_csv(statement: Mt940Statement) -> CsvStatement:
    return convert(statement, CsvStatement)


def mt940_to_camt053(statement: Mt940Statement) -> Camt053Statement:
    return convert(statement, Camt053Statement)


def camt053_to_csv(statement: Camt053Statement) -> CsvStatement:
    return convert(statement, CsvStatement)


def camt053_to_mt940(statement: Camt053Statement) -> Mt940Statement:
    return convert(statement, Mt940Statement)
