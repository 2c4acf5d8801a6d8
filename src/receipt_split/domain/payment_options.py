"""Which settlement payment options a receipt host offers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class PaymentProfile(Protocol):
    preferred_payment_method: str | None
    absorb_extra_cents: bool | None
    venmo_enabled: bool | None
    venmo_username: str | None
    cash_app_enabled: bool | None
    cash_app_cashtag: str | None
    zelle_enabled: bool | None
    zelle_contact: str | None
    cash_apple_pay_enabled: bool | None


@dataclass(slots=True, frozen=True)
class HostPaymentConfig:
    has_payment_options: bool
    absorb_extra_cents: bool
    preferred_payment_method: str | None = None
    venmo_enabled: bool = False
    venmo_username: str | None = None
    cash_app_enabled: bool = False
    cash_app_cashtag: str | None = None
    zelle_enabled: bool = False
    zelle_contact: str | None = None
    cash_apple_pay_enabled: bool = False


GUEST_HOST_PAYMENT_CONFIG = HostPaymentConfig(
    has_payment_options=True,
    absorb_extra_cents=True,
    preferred_payment_method="cash_apple_pay",
    cash_apple_pay_enabled=True,
)
NO_PAYMENT_CONFIG = HostPaymentConfig(
    has_payment_options=False,
    absorb_extra_cents=False,
)


def _handle(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def resolve_host_payment_config(
    *,
    owner_token_identifier: str | None,
    profile: PaymentProfile | None,
) -> HostPaymentConfig:
    """Guest hosts settle in person; account hosts need an enabled option."""

    if not owner_token_identifier:
        return GUEST_HOST_PAYMENT_CONFIG
    if profile is None:
        return NO_PAYMENT_CONFIG

    venmo_username = _handle(profile.venmo_username)
    cash_app_cashtag = _handle(profile.cash_app_cashtag)
    zelle_contact = _handle(profile.zelle_contact)
    has_venmo = profile.venmo_enabled is True and venmo_username is not None
    has_cash_app = profile.cash_app_enabled is True and cash_app_cashtag is not None
    has_zelle = profile.zelle_enabled is True and zelle_contact is not None
    has_cash_apple_pay = profile.cash_apple_pay_enabled is True
    return HostPaymentConfig(
        has_payment_options=(
            has_venmo or has_cash_app or has_zelle or has_cash_apple_pay
        ),
        absorb_extra_cents=profile.absorb_extra_cents is True,
        preferred_payment_method=profile.preferred_payment_method,
        venmo_enabled=profile.venmo_enabled is True,
        venmo_username=venmo_username,
        cash_app_enabled=profile.cash_app_enabled is True,
        cash_app_cashtag=cash_app_cashtag,
        zelle_enabled=profile.zelle_enabled is True,
        zelle_contact=zelle_contact,
        cash_apple_pay_enabled=has_cash_apple_pay,
    )
