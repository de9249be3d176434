"""Unit tests for domain value objects."""

import pytest

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.value_objects import Money, format_minor


# ── Money ────────────────────────────────────────────────────────────────────


class TestMoney:

    def test_creation(self):
        m = Money(1050)
        assert m.amount == 1050
        assert m.currency == "USD"

    def test_formatted_locally_when_server_omits_it(self):
        assert str(Money(1050)) == "$10.50"

    def test_server_formatting_is_kept(self):
        m = Money(1050, "EUR", "10,50 €")
        assert str(m) == "10,50 €"

    def test_formatting_does_not_affect_equality(self):
        assert Money(1050, "EUR", "10,50 €") == Money(1050, "EUR")

    def test_currency_is_normalised(self):
        assert Money(100, "gbp").currency == "GBP"

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError, match="integer number of minor units"):
            Money(10.5)

    def test_bool_amount_rejected(self):
        with pytest.raises(ValidationError, match="integer"):
            Money(True)

    def test_invalid_currency_rejected(self):
        with pytest.raises(ValidationError, match="Invalid currency"):
            Money(100, "DOLLARS")

    def test_negated_display(self):
        assert Money(1000).negated_display() == "-$10.00"
        assert Money(-1000).negated_display() == "-$10.00"

    def test_is_positive(self):
        assert Money(1).is_positive
        assert not Money.zero().is_positive

    def test_immutable(self):
        m = Money(100)
        with pytest.raises(AttributeError):
            m.amount = 200  # type: ignore[misc]


class TestFormatMinor:

    def test_thousands_separator(self):
        assert format_minor(123456789, "USD") == "$1,234,567.89"

    def test_zero_decimal_currency(self):
        assert format_minor(1500, "JPY") == "¥1,500"

    def test_unknown_currency_uses_code(self):
        assert format_minor(999, "CHF") == "CHF 9.99"

    def test_negative(self):
        assert format_minor(-250, "GBP") == "-£2.50"

    def test_pads_minor_units(self):
        assert format_minor(1005, "USD") == "$10.05"
