"""Validation of Telegram identities received from the website or the bot."""

from __future__ import annotations

import re

from authrelay.errors import ValidationError

_IDENTITY_PATTERN = re.compile(r"^[1-9][0-9]{0,19}$")


def normalize_identity(value: object) -> str:
    """Return a Telegram user id as a canonical decimal string.

    Accepts ints and digit strings with surrounding whitespace; anything else
    raises `ValidationError`.
    """
    if isinstance(value, bool):
        raise ValidationError.for_identity(value)
    if isinstance(value, int):
        candidate = str(value)
    elif isinstance(value, str):
        candidate = value.strip()
    else:
        raise ValidationError.for_identity(value)
    if not _IDENTITY_PATTERN.fullmatch(candidate):
        raise ValidationError.for_identity(value)
    return candidate
