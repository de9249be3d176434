"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from storefront.domain.exceptions import ValidationError

_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}

# Currencies whose minor unit is the major unit.
_ZERO_DECIMAL = frozenset({"JPY", "KRW", "VND", "CLP", "ISK"})


@dataclass(frozen=True)
class Money:
    """Monetary amount in integer minor units, with currency.

    ``formatted`` is the display string supplied by the server.  When the
    server omits it the value is formatted locally.  Amounts are never
    recomputed on the client; the server's figures are displayed as-is.
    """

    amount: int
    currency: str = "USD"
    formatted: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValidationError(
                f"Money amount must be an integer number of minor units, "
                f"got {type(self.amount).__name__}"
            )
        if not self.currency or len(self.currency) != 3:
            raise ValidationError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "currency", self.currency.upper())
        if not self.formatted:
            object.__setattr__(self, "formatted", format_minor(self.amount, self.currency))

    # --- Display --------------------------------------------------------------

    def __str__(self) -> str:
        return self.formatted

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    def negated_display(self) -> str:
        """Display form for deductions, e.g. ``-$10.00``."""
        return f"-{format_minor(abs(self.amount), self.currency)}"

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def zero(currency: str = "USD") -> Money:
        return Money(0, currency)


def format_minor(amount: int, currency: str) -> str:
    """Format an integer minor-unit amount, e.g. ``1050, USD -> $10.50``."""
    currency = currency.upper()
    sign = "-" if amount < 0 else ""
    amount = abs(amount)
    if currency in _ZERO_DECIMAL:
        number = f"{amount:,}"
    else:
        number = f"{amount // 100:,}.{amount % 100:02d}"
    symbol = _SYMBOLS.get(currency)
    if symbol is None:
        return f"{sign}{currency} {number}"
    return f"{sign}{symbol}{number}"
