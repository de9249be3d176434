"""Storefront settings loaded from the environment (``STOREFRONT_*``) or ``.env``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from storefront.domain.model.checkout import CheckoutConfig, FieldVisibility, TermsMode


class StorefrontSettings(BaseSettings):
    """Application settings loaded from environment"""

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store API
    api_url: str = "https://api.shoprocket.io/v3"
    publishable_key: str = ""
    locale: str = "en"
    request_timeout: float = Field(default=30.0, gt=0)

    # Cart session; a token is generated and kept in data_dir when unset
    cart_token: str | None = None
    data_dir: Path = Path.home() / ".storefront"

    # Checkout behaviour
    terms_mode: TermsMode = TermsMode.IMPLICIT
    name_visibility: FieldVisibility = FieldVisibility.REQUIRED
    phone_visibility: FieldVisibility = FieldVisibility.OPTIONAL
    company_visibility: FieldVisibility = FieldVisibility.OPTIONAL
    poll_interval_seconds: float = Field(default=3.0, ge=0)
    poll_max_attempts: int = Field(default=40, ge=1)
    account_password_min_length: int = Field(default=8, ge=1)
    return_url: str | None = None
    cancel_url: str | None = None

    def checkout_config(self) -> CheckoutConfig:
        return CheckoutConfig(
            terms_mode=self.terms_mode,
            name_visibility=self.name_visibility,
            phone_visibility=self.phone_visibility,
            company_visibility=self.company_visibility,
            poll_interval_seconds=self.poll_interval_seconds,
            poll_max_attempts=self.poll_max_attempts,
            account_password_min_length=self.account_password_min_length,
            locale=self.locale,
            return_url=self.return_url,
            cancel_url=self.cancel_url,
        )


@lru_cache()
def get_settings() -> StorefrontSettings:
    """Get cached settings instance"""
    return StorefrontSettings()
