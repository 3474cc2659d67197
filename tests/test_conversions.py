"""Tests for conversions between statement records."""

import dataclasses
from decimal import Decimal

import pytest

from ledger_bridge.conversions import (
    camt053_to_csv,
    camt053_to_mt940,
    convert,
    csv_to_camt053,
    csv_to_mt940,
    mt940_to_camt053,
    mt940_to_csv,
)
from ledger_bridge.formats import Camt053Format, Mt940Format
from ledger_bridge.models import (
    Camt053Statement,
    CsvStatement,
    Mt940Statement,
    Statement,
)

RECORD_TYPES = (CsvStatement, Mt940Statement, Camt053Statement)


def _fields(statement: Statement) -> dict[str, object]:
    return {f.name: getattr(statement, f.name) for f in dataclasses.fields(Statement)}


class TestConvert:
    """Tests for the generic convert function."""

    @pytest.mark.parametrize("target", RECORD_TYPES)
    def test_fields_copied(self, sample_statement: Mt940Statement, target: type[Statement]) -> None:
        """Test every shared field is carried over."""
        converted = convert(sample_statement, target)
        assert type(converted) is target
        assert _fields(converted) == _fields(sample_statement)

    def test_source_untouched(self, sample_statement: Mt940Statement) -> None:
        """Test conversion builds a new record."""
        before = _fields(sample_statement)
        converted = convert(sample_statement, CsvStatement)
        assert converted is not sample_statement
        assert _fields(sample_statement) == before


class TestNamedConversions:
    """Tests for the six named conversions."""

    def test_round_trips(self, sample_statement: Mt940Statement) -> None:
        """Test X -> Y -> X gives the original record."""
        csv_record = mt940_to_csv(sample_statement)
        camt_record = mt940_to_camt053(sample_statement)

        assert csv_to_mt940(csv_record) == sample_statement
        assert camt053_to_mt940(camt_record) == sample_statement
        assert camt053_to_csv(csv_to_camt053(csv_record)) == csv_record
        assert csv_to_camt053(camt053_to_csv(camt_record)) == camt_record

    def test_result_types(self, sample_statement: Mt940Statement) -> None:
        """Test each conversion returns its target record type."""
        csv_record = mt940_to_csv(sample_statement)
        camt_record = mt940_to_camt053(sample_statement)
        assert isinstance(csv_record, CsvStatement)
        assert isinstance(camt_record, Camt053Statement)
        assert isinstance(csv_to_mt940(csv_record), Mt940Statement)
        assert isinstance(camt053_to_mt940(camt_record), Mt940Statement)


class TestFeeScenario:
    """The single-fee MT940 statement carried through CAMT.053 and back."""

    def test_mt940_to_camt053_and_back(self, fee_statement_mt940: str) -> None:
        """Test the fee survives a trip through CAMT.053."""
        original = Mt940Format.read(fee_statement_mt940.encode())

        camt_document = Camt053Format.dumps(mt940_to_camt053(original))
        back = camt053_to_mt940(Camt053Format.loads(camt_document))

        assert back == original
        assert back.opening_balance == original.opening_balance
        assert back.closing_balance == original.closing_balance
        tx = back.transactions[0]
        assert tx.amount == Decimal("12.01")
        assert tx.transaction_type.value == "debit"
        assert tx.description == "fee"
