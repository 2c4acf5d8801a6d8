"""Caller identity resolution: owners, participant keys and display names."""

from __future__ import annotations

import re
from dataclasses import dataclass

from receipt_split.domain.errors import (
    AuthenticationRequiredError,
    InvalidRequestError,
    compose_error_message,
)

GUEST_DEVICE_ID_PATTERN = re.compile(r"^[0-9a-f-]{36}$")
AUTH_KEY_PREFIX = "auth:"
GUEST_KEY_PREFIX = "guest:"

SELF_DISPLAY_NAME = "You"
HOST_DISPLAY_NAME = "Host"
AUTHENTICATED_DISPLAY_NAME = "Friend"
GUEST_DISPLAY_NAME = "Guest"
GENERIC_DISPLAY_NAMES = frozenset({"you", "guest", "friend"})


@dataclass(slots=True, frozen=True)
class VerifiedIdentity:
    """Identity asserted by the upstream authenticator."""

    token_identifier: str
    subject: str
    issuer: str
    name: str | None = None
    email: str | None = None


@dataclass(slots=True, frozen=True)
class RequestContext:
    """What a request knows about its caller."""

    identity: VerifiedIdentity | None = None
    guest_device_id: str | None = None


@dataclass(slots=True, frozen=True)
class AuthenticatedOwner:
    identity: VerifiedIdentity


@dataclass(slots=True, frozen=True)
class GuestOwner:
    guest_device_id: str


Owner = AuthenticatedOwner | GuestOwner


@dataclass(slots=True, frozen=True)
class ParticipantIdentity:
    """Roster identity of the caller on a receipt."""

    participant_key: str
    token_identifier: str | None = None
    guest_device_id: str | None = None
    display_name: str | None = None


def normalize_guest_device_id(value: str | None) -> str | None:
    """Return the lower-cased device id, or None when it is not UUID shaped."""

    if value is None:
        return None
    normalized = value.strip().lower()
    if not GUEST_DEVICE_ID_PATTERN.match(normalized):
        return None
    return normalized


def require_guest_device_id(value: str | None) -> str:
    normalized = normalize_guest_device_id(value)
    if normalized is None:
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Guest device id must be a 36 character UUID string.",
                action="Send the device id generated by the app and retry.",
            )
        )
    return normalized


def auth_participant_key(token_identifier: str) -> str:
    return f"{AUTH_KEY_PREFIX}{token_identifier}"


def guest_participant_key(guest_device_id: str) -> str:
    return f"{GUEST_KEY_PREFIX}{guest_device_id}"


def is_guest_participant_key(participant_key: str) -> bool:
    return participant_key.startswith(GUEST_KEY_PREFIX)


def normalized_display_name(value: str | None) -> str | None:
    """Return a trimmed name, or None for blank and generic labels."""

    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed or trimmed.lower() in GENERIC_DISPLAY_NAMES:
        return None
    return trimmed


def resolve_owner(context: RequestContext) -> Owner:
    """Pick the owner variant for a request, preferring the verified identity."""

    if context.identity is not None:
        return AuthenticatedOwner(identity=context.identity)
    guest_device_id = normalize_guest_device_id(context.guest_device_id)
    if guest_device_id is not None:
        return GuestOwner(guest_device_id=guest_device_id)
    raise AuthenticationRequiredError()


def participant_identity_for(context: RequestContext) -> ParticipantIdentity | None:
    if context.identity is not None:
        return ParticipantIdentity(
            participant_key=auth_participant_key(context.identity.token_identifier),
            token_identifier=context.identity.token_identifier,
            display_name=normalized_display_name(context.identity.name),
        )
    guest_device_id = normalize_guest_device_id(context.guest_device_id)
    if guest_device_id is None:
        return None
    return ParticipantIdentity(
        participant_key=guest_participant_key(guest_device_id),
        guest_device_id=guest_device_id,
    )


def resolve_participant_for_mutation(context: RequestContext) -> ParticipantIdentity:
    participant = participant_identity_for(context)
    if participant is None:
        raise AuthenticationRequiredError()
    return participant


def resolve_participant_for_query(
    context: RequestContext,
) -> ParticipantIdentity | None:
    return participant_identity_for(context)


def host_participant_key(
    *,
    owner_token_identifier: str | None,
    guest_device_id: str | None,
) -> str | None:
    """Return the roster key the receipt owner appears under."""

    if owner_token_identifier:
        return auth_participant_key(owner_token_identifier)
    if guest_device_id:
        return guest_participant_key(guest_device_id)
    return None


def default_display_name(participant_key: str, *, is_host: bool = False) -> str:
    if is_host:
        return HOST_DISPLAY_NAME
    if participant_key.startswith(AUTH_KEY_PREFIX):
        return AUTHENTICATED_DISPLAY_NAME
    return GUEST_DISPLAY_NAME


def display_name_for(
    *,
    participant_key: str,
    stored_name: str | None,
    profile_name: str | None = None,
    is_host: bool = False,
    viewer_participant_key: str | None = None,
) -> str:
    """Resolve the label shown for a roster row to a given viewer."""

    named = normalized_display_name(stored_name) or normalized_display_name(
        profile_name
    )
    if named:
        return named
    if viewer_participant_key is not None and participant_key == viewer_participant_key:
        return SELF_DISPLAY_NAME
    return default_display_name(participant_key, is_host=is_host)
