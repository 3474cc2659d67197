"""ISO 20022 CAMT.053 bank-to-customer statement format.

Elements are matched by local name, so any ``camt.053.001.xx`` namespace
version is accepted on input. Output always uses ``camt.053.001.02``.
"""

import re
import xml.etree.ElementTree as ET
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

from ledger_bridge.errors import FormatError, InvalidValueError, MissingFieldError
from ledger_bridge.formats.base import StatementFormat
from ledger_bridge.logging_setup import get_logger
from ledger_bridge.models import (
    Balance,
    BalanceType,
    Camt053Statement,
    Statement,
    Transaction,
    TransactionType,
)
from ledger_bridge.utils import clean_description, format_amount, parse_date

logger = get_logger(__name__)

NAMESPACE = "urn:iso:std:iso:20022:tech:xsd:camt.053.001.02"

OPENING_BOOKED = "OPBD"
CLOSING_BOOKED = "CLBD"
NOT_PROVIDED = "NOTPROVIDED"

INDICATORS = {"CRDT": TransactionType.CREDIT, "DBIT": TransactionType.DEBIT}

IBAN_PATTERN = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{11,30}$")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element | None, name: str) -> list[ET.Element]:
    if elem is None:
        return []
    return [child for child in elem if _local(child.tag) == name]


def _find(elem: ET.Element | None, *path: str) -> ET.Element | None:
    """Follow a path of local names, taking the first match at each step."""
    for name in path:
        matches = _children(elem, name)
        if not matches:
            return None
        elem = matches[0]
    return elem


def _text(elem: ET.Element | None, *path: str) -> str | None:
    found = _find(elem, *path)
    if found is None or found.text is None:
        return None
    return found.text.strip() or None


def _parse_amount(elem: ET.Element, field: str) -> Decimal:
    raw = (elem.text or "").strip()
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise InvalidValueError(field, raw) from e
    if not value.is_finite() or value < 0:
        raise InvalidValueError(field, raw)
    return value


def _parse_indicator(elem: ET.Element | None, field: str) -> TransactionType:
    raw = _text(elem, "CdtDbtInd")
    if raw is None:
        raise MissingFieldError(f"{field}/CdtDbtInd")
    if raw not in INDICATORS:
        raise InvalidValueError(f"{field}/CdtDbtInd", raw)
    return INDICATORS[raw]


def _parse_date(elem: ET.Element | None, field: str) -> date | None:
    """Read ``Dt`` or ``DtTm`` below ``elem``; None when ``elem`` is absent."""
    if elem is None:
        return None
    raw = _text(elem, "Dt") or _text(elem, "DtTm")
    if raw is None:
        raise MissingFieldError(f"{field}/Dt")
    parsed = parse_date(raw)
    if parsed is None:
        raise InvalidValueError(field, raw)
    return parsed


def _account_id(elem: ET.Element | None) -> str | None:
    return _text(elem, "Id", "IBAN") or _text(elem, "Id", "Othr", "Id")


def _sub(parent: ET.Element, tag: str, text: str | None = None, **attrib: str) -> ET.Element:
    child = ET.SubElement(parent, tag, attrib)
    if text is not None:
        child.text = text
    return child


class Camt053Format(StatementFormat):
    """ISO 20022 CAMT.053 structured-markup statement format."""

    name: ClassVar[str] = "camt053"
    description: ClassVar[str] = "ISO 20022 CAMT.053 bank-to-customer statement (XML)"
    aliases: ClassVar[tuple[str, ...]] = ("structured-markup", "camt", "xml")
    file_extensions: ClassVar[tuple[str, ...]] = (".xml", ".camt")
    record_type: ClassVar[type[Statement]] = Camt053Statement

    @classmethod
    def can_parse(cls, content: str) -> bool:
        """Check for a bank-to-customer statement document."""
        head = content.lstrip()
        return head.startswith("<") and "BkToCstmrStmt" in content

    @classmethod
    def loads(cls, content: str) -> Camt053Statement:
        """Parse the first statement of a CAMT.053 document."""
        try:
            root = ET.fromstring(content)
        except (ET.ParseError, ValueError) as e:
            raise FormatError(f"Malformed XML: {e}") from e

        if _local(root.tag) != "Document":
            raise FormatError(f"Unexpected root element {_local(root.tag)}")

        stmt = _find(root, "BkToCstmrStmt", "Stmt")
        if stmt is None:
            raise FormatError("No Stmt element found")

        acct = _find(stmt, "Acct")
        account = _account_id(acct)
        if account is None:
            raise MissingFieldError("Acct/Id")

        currency = next(
            (el.get("Ccy") for el in stmt.iter() if _local(el.tag) == "Amt" and el.get("Ccy")),
            None,
        ) or _text(acct, "Ccy")
        if currency is None:
            raise MissingFieldError("Ccy")
        currency = currency.upper()

        opening, closing = cls._parse_balances(stmt)

        transactions: list[Transaction] = []
        for ntry in _children(stmt, "Ntry"):
            transactions.extend(cls._parse_entry(ntry, currency))

        return Camt053Statement(
            account_number=account,
            currency=currency,
            opening_balance=opening,
            closing_balance=closing,
            transactions=tuple(transactions),
        )

    @classmethod
    def _parse_balances(cls, stmt: ET.Element) -> tuple[Balance, Balance]:
        balances: dict[str, Balance] = {}

        for bal in _children(stmt, "Bal"):
            code = _text(bal, "Tp", "CdOrPrtry", "Cd") or _text(bal, "Tp", "CdOrPrtry", "Prtry")
            if code not in (OPENING_BOOKED, CLOSING_BOOKED):
                logger.debug("Discarding balance of type %s", code)
                continue
            if code in balances:
                continue

            amt = _find(bal, "Amt")
            if amt is None:
                raise MissingFieldError(f"Bal[{code}]/Amt")
            indicator = _parse_indicator(bal, f"Bal[{code}]")
            balance_date = _parse_date(_find(bal, "Dt"), f"Bal[{code}]/Dt")
            if balance_date is None:
                raise MissingFieldError(f"Bal[{code}]/Dt")

            balances[code] = Balance(
                amount=_parse_amount(amt, f"Bal[{code}]/Amt"),
                date=balance_date,
                indicator=BalanceType(indicator.value),
            )

        for code in (OPENING_BOOKED, CLOSING_BOOKED):
            if code not in balances:
                raise MissingFieldError(f"Bal[{code}]")
        return balances[OPENING_BOOKED], balances[CLOSING_BOOKED]

    @classmethod
    def _parse_entry(cls, ntry: ET.Element, currency: str) -> list[Transaction]:
        """Turn one Ntry into transactions, one per TxDtls."""
        amt = _find(ntry, "Amt")
        if amt is None:
            raise MissingFieldError("Ntry/Amt")
        cls._check_currency(amt, currency, "Ntry/Amt")
        amount = _parse_amount(amt, "Ntry/Amt")
        transaction_type = _parse_indicator(ntry, "Ntry")

        booking_date = _parse_date(_find(ntry, "BookgDt"), "Ntry/BookgDt")
        if booking_date is None:
            raise MissingFieldError("Ntry/BookgDt")
        value_date = _parse_date(_find(ntry, "ValDt"), "Ntry/ValDt")

        details: list[ET.Element | None] = [
            tx for dtls in _children(ntry, "NtryDtls") for tx in _children(dtls, "TxDtls")
        ]
        if len(details) > 1:
            logger.debug("Flattening batched entry into %d transactions", len(details))
        if not details:
            details = [None]

        transactions = []
        for detail in details:
            tx_amount = amount
            tx_type = transaction_type

            detail_amt = _find(detail, "Amt")
            if detail_amt is None:
                detail_amt = _find(detail, "AmtDtls", "TxAmt", "Amt")
            if detail_amt is not None:
                cls._check_currency(detail_amt, currency, "TxDtls/Amt")
                tx_amount = _parse_amount(detail_amt, "TxDtls/Amt")
            if _find(detail, "CdtDbtInd") is not None:
                tx_type = _parse_indicator(detail, "TxDtls")

            party = "Dbtr" if tx_type is TransactionType.CREDIT else "Cdtr"
            transactions.append(
                Transaction(
                    booking_date=booking_date,
                    value_date=value_date,
                    amount=tx_amount,
                    transaction_type=tx_type,
                    description=cls._description(ntry, detail),
                    reference=cls._reference(ntry, detail),
                    counterparty_name=(
                        _text(detail, "RltdPties", party, "Nm")
                        or _text(detail, "RltdPties", party, "Pty", "Nm")
                    ),
                    counterparty_account=_account_id(_find(detail, "RltdPties", f"{party}Acct")),
                )
            )
        return transactions

    @staticmethod
    def _check_currency(amt: ET.Element, currency: str, field: str) -> None:
        ccy = amt.get("Ccy")
        if ccy is not None and ccy.strip().upper() != currency:
            raise InvalidValueError(f"{field}/@Ccy", ccy)

    @staticmethod
    def _reference(ntry: ET.Element, detail: ET.Element | None) -> str | None:
        end_to_end = _text(detail, "Refs", "EndToEndId")
        if end_to_end == NOT_PROVIDED:
            end_to_end = None
        return (
            _text(detail, "Refs", "TxId")
            or end_to_end
            or _text(detail, "Refs", "AcctSvcrRef")
            or _text(ntry, "AcctSvcrRef")
            or _text(ntry, "NtryRef")
        )

    @staticmethod
    def _description(ntry: ET.Element, detail: ET.Element | None) -> str:
        rmt = _find(detail, "RmtInf")
        unstructured = [(el.text or "").strip() for el in _children(rmt, "Ustrd")]
        unstructured = [text for text in unstructured if text]
        if unstructured:
            return clean_description(" ".join(unstructured))

        text = (
            _text(rmt, "Strd", "CdtrRefInf", "Ref")
            or _text(detail, "AddtlTxInf")
            or _text(ntry, "AddtlNtryInf")
            or ""
        )
        return clean_description(text)

    @classmethod
    def dumps(
        cls,
        statement: Statement,
        created_at: datetime | None = None,
        message_id: str | None = None,
        **options: Any,
    ) -> str:
        """Render a statement as a CAMT.053 document, one Ntry per transaction.

        ``created_at`` defaults to midnight of the closing balance date so that
        output is reproducible.
        """
        currency = statement.currency
        created = created_at or datetime.combine(statement.closing_balance.date, time())
        created_text = created.replace(microsecond=0).isoformat()
        closing_day = statement.closing_balance.date.strftime("%Y%m%d")
        msg_id = message_id or f"STMT-{closing_day}"

        root = ET.Element("Document", xmlns=NAMESPACE)
        body = _sub(root, "BkToCstmrStmt")

        header = _sub(body, "GrpHdr")
        _sub(header, "MsgId", msg_id)
        _sub(header, "CreDtTm", created_text)

        stmt = _sub(body, "Stmt")
        _sub(stmt, "Id", f"{msg_id}-1")
        _sub(stmt, "CreDtTm", created_text)

        acct = _sub(stmt, "Acct")
        acct_id = _sub(acct, "Id")
        account = statement.account_number
        if IBAN_PATTERN.match(account):
            _sub(acct_id, "IBAN", account)
        else:
            _sub(_sub(acct_id, "Othr"), "Id", account)
        _sub(acct, "Ccy", currency)

        for code, balance in (
            (OPENING_BOOKED, statement.opening_balance),
            (CLOSING_BOOKED, statement.closing_balance),
        ):
            bal = _sub(stmt, "Bal")
            _sub(_sub(_sub(bal, "Tp"), "CdOrPrtry"), "Cd", code)
            _sub(bal, "Amt", format_amount(balance.amount, currency), Ccy=currency)
            _sub(bal, "CdtDbtInd", "CRDT" if balance.indicator is BalanceType.CREDIT else "DBIT")
            _sub(_sub(bal, "Dt"), "Dt", balance.date.isoformat())

        for tx in statement.transactions:
            ntry = _sub(stmt, "Ntry")
            _sub(ntry, "Amt", format_amount(tx.amount, currency), Ccy=currency)
            _sub(ntry, "CdtDbtInd", "CRDT" if tx.is_credit else "DBIT")
            _sub(ntry, "Sts", "BOOK")
            _sub(_sub(ntry, "BookgDt"), "Dt", tx.booking_date.isoformat())
            if tx.value_date is not None:
                _sub(_sub(ntry, "ValDt"), "Dt", tx.value_date.isoformat())

            detail = _sub(_sub(ntry, "NtryDtls"), "TxDtls")
            if tx.reference:
                _sub(_sub(detail, "Refs"), "TxId", tx.reference)
            if tx.counterparty_name or tx.counterparty_account:
                party = "Dbtr" if tx.is_credit else "Cdtr"
                parties = _sub(detail, "RltdPties")
                if tx.counterparty_name:
                    _sub(_sub(parties, party), "Nm", tx.counterparty_name)
                if tx.counterparty_account:
                    party_id = _sub(_sub(parties, f"{party}Acct"), "Id")
                    if IBAN_PATTERN.match(tx.counterparty_account):
                        _sub(party_id, "IBAN", tx.counterparty_account)
                    else:
                        _sub(_sub(party_id, "Othr"), "Id", tx.counterparty_account)
            if tx.description:
                _sub(_sub(detail, "RmtInf"), "Ustrd", tx.description)

        ET.indent(root)
        document = ET.tostring(root, encoding="unicode")
        return f'<?xml version="1.0" encoding="UTF-8"?>\n{document}\n'
