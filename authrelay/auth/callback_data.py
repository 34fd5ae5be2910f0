"""Encode and decode inline-button callback payloads for login alerts.

Payloads have the form `<verb>_<alertId>` with verb `login_confirm` or
`login_deny`. They are decoded once, at the Telegram boundary, into one of
`ConfirmLogin`, `DenyLogin` or `UnknownCallback`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

CONFIRM_VERB: Final = "login_confirm"
DENY_VERB: Final = "login_deny"

# Telegram rejects callback data longer than 64 bytes.
MAX_CALLBACK_BYTES: Final = 64


@dataclass(frozen=True, slots=True)
class ConfirmLogin:
    alert_id: str


@dataclass(frozen=True, slots=True)
class DenyLogin:
    alert_id: str


@dataclass(frozen=True, slots=True)
class UnknownCallback:
    raw: str


CallbackAction = ConfirmLogin | DenyLogin | UnknownCallback


def encode_callback(action: ConfirmLogin | DenyLogin) -> str:
    """Render a login decision as callback payload text."""
    verb = CONFIRM_VERB if isinstance(action, ConfirmLogin) else DENY_VERB
    payload = f"{verb}_{action.alert_id}"
    if len(payload.encode("utf-8")) > MAX_CALLBACK_BYTES:
        message = f"Callback payload exceeds {MAX_CALLBACK_BYTES} bytes."
        raise ValueError(message)
    return payload


def decode_callback(data: bytes | str | None) -> CallbackAction:
    """Decode raw callback data; anything unrecognized becomes UnknownCallback."""
    if data is None:
        return UnknownCallback(raw="")
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            return UnknownCallback(raw=data.hex())
    else:
        text = data

    # Verbs and alert ids may both contain underscores; match on the verb prefix.
    if text.startswith(f"{CONFIRM_VERB}_") and len(text) > len(CONFIRM_VERB) + 1:
        return ConfirmLogin(alert_id=text[len(CONFIRM_VERB) + 1 :])
    if text.startswith(f"{DENY_VERB}_") and len(text) > len(DENY_VERB) + 1:
        return DenyLogin(alert_id=text[len(DENY_VERB) + 1 :])
    return UnknownCallback(raw=text)
