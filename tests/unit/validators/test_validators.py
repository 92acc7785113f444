from __future__ import annotations

from decimal import Decimal

import pytest

from renoledger.core.exceptions import ValidationError
from renoledger.schemas.invoices import PaymentRecordRequest, SageExportQuery
from renoledger.utils.money import format_amount, format_currency, format_percent, percent_of, to_money
from renoledger.utils.validators import optional_text, parse_model, sanitize_text


def test_sanitize_text_strips_null_and_trims():
    assert sanitize_text("  hello\x00world  ") == "helloworld"
    assert sanitize_text(None) == ""
    assert sanitize_text("abcdef", max_len=3) == "abc"


def test_optional_text_blank_becomes_none():
    assert optional_text("   ") is None
    assert optional_text(" ref ") == "ref"


def test_parse_model_reports_field_errors():
    with pytest.raises(ValidationError) as excinfo:
        parse_model(PaymentRecordRequest, {"amount": "-1", "payment_method": "cash"})

    fields = [item["field"] for item in excinfo.value.details["fields"]]
    assert fields == ["amount"]


def test_parse_model_passes_instances_through():
    payload = PaymentRecordRequest(amount=Decimal("10.00"), payment_method="cash")
    assert parse_model(PaymentRecordRequest, payload) is payload


def test_export_query_rejects_inverted_range():
    with pytest.raises(ValidationError):
        parse_model(SageExportQuery, {"start_date": "2026-02-01", "end_date": "2026-01-01"})


def test_money_helpers_round_half_up():
    assert to_money(0.1) == Decimal("0.10")
    assert to_money("2.675") == Decimal("2.68")
    assert percent_of(Decimal("884.96"), Decimal("13")) == Decimal("115.04")
    assert format_amount(Decimal("1234.5")) == "1234.50"
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_percent(Decimal("10.00")) == "10"
    assert format_percent(Decimal("7.50")) == "7.5"

    for bad in (None, True, "abc", float("nan")):
        with pytest.raises(ValueError):
            to_money(bad)
