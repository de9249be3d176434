"""Domain service: the six-box one-time-code input.

Models what the shopper sees: six single-digit fields and which one has
focus.  It knows nothing about verification; callers ask ``is_complete``
after each change and verify when it turns true.
"""

from __future__ import annotations

import re

from storefront.domain.exceptions import ValidationError

OTP_LENGTH = 6

_NON_DIGITS = re.compile(r"\D")


class OtpEntry:

    def __init__(self) -> None:
        self._digits: list[str] = [""] * OTP_LENGTH
        self.focus = 0

    @property
    def digits(self) -> tuple[str, ...]:
        return tuple(self._digits)

    @property
    def code(self) -> str:
        return "".join(self._digits)

    @property
    def is_complete(self) -> bool:
        code = self.code
        return len(code) == OTP_LENGTH and code.isdigit()

    def type(self, index: int, value: str) -> bool:
        """Handle input into field *index*.

        Non-numeric input is rejected (the field is cleared).  A digit moves
        focus to the next field.  Returns True if the input was accepted.
        """
        self._check_index(index)
        value = value.strip()[-1:] if value.strip() else ""
        if value and not value.isdigit():
            self._digits[index] = ""
            return False
        self._digits[index] = value
        if value and index < OTP_LENGTH - 1:
            self.focus = index + 1
        else:
            self.focus = index
        return True

    def backspace(self, index: int) -> None:
        """Backspace in a filled field clears it; in an empty one moves back."""
        self._check_index(index)
        if self._digits[index]:
            self._digits[index] = ""
            self.focus = index
        elif index > 0:
            self.focus = index - 1

    def paste(self, text: str) -> bool:
        """Fill fields from pasted text, starting at the first field.

        Every non-digit is dropped and the rest is capped at six.  Returns
        True if anything was filled.
        """
        digits = _NON_DIGITS.sub("", text)[:OTP_LENGTH]
        if not digits:
            return False
        self._digits = list(digits) + [""] * (OTP_LENGTH - len(digits))
        self.focus = min(len(digits), OTP_LENGTH - 1)
        return True

    def clear(self) -> None:
        self._digits = [""] * OTP_LENGTH
        self.focus = 0

    @staticmethod
    def _check_index(index: int) -> None:
        if not 0 <= index < OTP_LENGTH:
            raise ValidationError(f"OTP field index must be 0-{OTP_LENGTH - 1}, got {index}")
