"""Column coercion helpers shared by the repository row decoders."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from collections.abc import Mapping


class RowDecodeError(RuntimeError):
    """Raised when a stored row does not match the expected column types."""

    @classmethod
    def for_column(cls, table: str, column: str) -> RowDecodeError:
        """Build deterministic error naming the offending table column."""
        return cls(f"Row in `{table}` has missing or invalid `{column}` value.")


def as_mapping(row: object) -> Mapping[str, object]:
    """View a SQLAlchemy row mapping as a plain typed mapping."""
    return cast("Mapping[str, object]", row)


def coerce_str(row: Mapping[str, object], column: str, *, table: str) -> str:
    value = row.get(column)
    if isinstance(value, str):
        return value
    raise RowDecodeError.for_column(table, column)


def coerce_optional_str(
    row: Mapping[str, object],
    column: str,
    *,
    table: str,
) -> str | None:
    value = row.get(column)
    if value is None or isinstance(value, str):
        return value
    raise RowDecodeError.for_column(table, column)


def coerce_int(row: Mapping[str, object], column: str, *, table: str) -> int:
    value = row.get(column)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise RowDecodeError.for_column(table, column)


def coerce_optional_int(
    row: Mapping[str, object],
    column: str,
    *,
    table: str,
) -> int | None:
    if row.get(column) is None:
        return None
    return coerce_int(row, column, table=table)


def decode_context(
    row: Mapping[str, object],
    column: str,
    *,
    table: str,
) -> dict[str, str]:
    """Decode a JSON object column of opaque string values."""
    raw = row.get(column)
    if raw is None:
        return {}
    if not isinstance(raw, str):
        raise RowDecodeError.for_column(table, column)
    try:
        decoded = cast("object", json.loads(raw))
    except json.JSONDecodeError as exc:
        raise RowDecodeError.for_column(table, column) from exc
    if not isinstance(decoded, dict):
        raise RowDecodeError.for_column(table, column)
    items = cast("dict[object, object]", decoded)
    return {
        str(key): "" if value is None else str(value) for key, value in items.items()
    }


def encode_context(context: Mapping[str, str] | None) -> str:
    """Encode an opaque context mapping as compact, key-sorted JSON."""
    return json.dumps(dict(context or {}), separators=(",", ":"), sort_keys=True)


def now_epoch() -> int:
    """Return the current UTC timestamp as integer seconds."""
    return int(datetime.now(tz=UTC).timestamp())
