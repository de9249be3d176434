"""Domain service: local field validation for checkout drafts.

These checks are the synchronous, field-scoped part of validation:
required fields and formats.  Anything that needs the server (address
deliverability, stock, prices) is validated on submission and reported
back as step-scoped errors.
"""

from __future__ import annotations

import re

from storefront.domain.model.checkout import (
    AddressData,
    CheckoutConfig,
    CustomerData,
    FieldErrors,
    FieldVisibility,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+()]+$")

POSTAL_CODE_PATTERNS = {
    "US": re.compile(r"^\d{5}(-\d{4})?$"),
    "GB": re.compile(r"^[A-Z]{1,2}\d[A-Z\d]? ?\d[A-Z]{2}$", re.IGNORECASE),
    "CA": re.compile(r"^[A-Z]\d[A-Z] ?\d[A-Z]\d$", re.IGNORECASE),
    "AU": re.compile(r"^\d{4}$"),
    "DE": re.compile(r"^\d{5}$"),
    "FR": re.compile(r"^\d{5}$"),
    "JP": re.compile(r"^\d{3}-?\d{4}$"),
}

COUNTRIES_WITH_STATES = frozenset({"US", "CA", "AU", "BR", "IN", "MX"})

INVALID_EMAIL = "Please enter a valid email"
INVALID_PHONE = "Please enter a valid phone number"
INVALID_POSTAL_CODE = "Please enter a valid postal code"


def field_label(field: str) -> str:
    """``postal_code`` -> ``Postal Code``."""
    return field.replace("_", " ").title()


def required_message(field: str) -> str:
    return f"{field_label(field)} is required"


def requires_state(country: str) -> bool:
    return country.upper() in COUNTRIES_WITH_STATES


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def validate_customer(
    customer: CustomerData,
    config: CheckoutConfig,
    is_guest: bool = True,
) -> FieldErrors:
    """Validate the contact step.

    Email is always required.  Names are required for guests when the
    store shows them as required; phone follows its own visibility.
    """
    errors: FieldErrors = {}

    email = customer.email.strip()
    if not email:
        errors["email"] = required_message("email")
    elif not is_valid_email(email):
        errors["email"] = INVALID_EMAIL

    if is_guest and config.name_visibility is FieldVisibility.REQUIRED:
        for name_field in ("first_name", "last_name"):
            if not getattr(customer, name_field).strip():
                errors[name_field] = required_message(name_field)

    phone = customer.phone.strip()
    if config.phone_visibility is FieldVisibility.REQUIRED and not phone:
        errors["phone"] = required_message("phone")
    elif config.phone_visibility is not FieldVisibility.HIDDEN and phone:
        if not PHONE_PATTERN.match(phone):
            errors["phone"] = INVALID_PHONE

    if config.company_visibility is FieldVisibility.REQUIRED and not customer.company.strip():
        errors["company"] = required_message("company")

    return errors


def validate_address(address: AddressData) -> FieldErrors:
    """Validate a shipping or billing address."""
    errors: FieldErrors = {}

    for required in ("line1", "city", "postal_code", "country"):
        if not getattr(address, required).strip():
            errors[required] = required_message(required)

    country = address.country.strip().upper()
    if country and requires_state(country) and not address.state.strip():
        errors["state"] = required_message("state")

    postal_code = address.postal_code.strip()
    pattern = POSTAL_CODE_PATTERNS.get(country)
    if postal_code and pattern is not None and not pattern.match(postal_code):
        errors["postal_code"] = INVALID_POSTAL_CODE

    return errors
