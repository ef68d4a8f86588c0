"""Tax calculator: pure arithmetic and id resolution."""

from decimal import Decimal

import pytest

from backoffice.errors import NotFoundError, ValidationError
from backoffice.models import Tax
from backoffice.services.tax_service import calculate_tax, compute_total_tax, parse_tax_ids
from backoffice.time_utils import utcnow


def test_single_rate_on_post_discount_base():
    result = calculate_tax(Decimal("90.00"), [Tax(id=1, name="VAT", value=Decimal("8"))])

    assert result.total == Decimal("7.20")
    assert result.lines[0].tax_id == 1
    assert result.lines[0].rate == Decimal("8")


def test_rates_do_not_compound():
    taxes = [
        Tax(id=1, name="A", value=Decimal("10")),
        Tax(id=2, name="B", value=Decimal("5")),
    ]
    assert calculate_tax(Decimal("100"), taxes).total == Decimal("15.00")


def test_each_line_is_rounded_to_cents():
    result = calculate_tax(Decimal("0.35"), [Tax(id=1, name="VAT", value=Decimal("10"))])
    # 0.035 -> 0.04
    assert result.total == Decimal("0.04")


def test_no_taxes():
    assert calculate_tax(Decimal("50"), []).total == Decimal("0")


def test_parse_tax_ids():
    assert parse_tax_ids([1, "2"]) == [1, 2]
    assert parse_tax_ids(None) == []
    with pytest.raises(ValidationError):
        parse_tax_ids(["abc"])
    with pytest.raises(ValidationError):
        parse_tax_ids(5)


def test_compute_total_tax_resolves_ids(db_session, tax):
    result = compute_total_tax(Decimal("90"), [tax.id])
    assert result.total == Decimal("7.20")


def test_duplicate_ids_apply_once(db_session, tax):
    result = compute_total_tax(Decimal("100"), [tax.id, tax.id])
    assert result.total == Decimal("8.00")
    assert len(result.lines) == 1


def test_unknown_tax_is_not_found(db_session, tax):
    with pytest.raises(NotFoundError) as exc:
        compute_total_tax(Decimal("100"), [tax.id, 999])
    assert "999" in exc.value.message


def test_deleted_tax_is_not_found(db_session, tax):
    tax.deleted_at = utcnow()
    db_session.commit()

    with pytest.raises(NotFoundError):
        compute_total_tax(Decimal("100"), [tax.id])
