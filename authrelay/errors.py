"""Error taxonomy shared by the OTP issuer, login alerts, routers and API."""

from __future__ import annotations


class RelayError(RuntimeError):
    """Base error for per-request relay failures."""


class ValidationError(RelayError):
    """Raised for malformed identities, payload fields or OTP codes."""

    @classmethod
    def for_identity(cls, identity: object) -> ValidationError:
        """Build deterministic error for non-numeric Telegram identities."""
        return cls(f"Invalid Telegram identity {identity!r}.")

    @classmethod
    def for_missing_field(cls, field_name: str) -> ValidationError:
        """Build deterministic error for a required payload field."""
        return cls(f"Missing required field `{field_name}`.")

    @classmethod
    def for_invalid_code(cls) -> ValidationError:
        """Build deterministic error for a code that does not match."""
        return cls("Invalid OTP code.")


class BadRequestError(ValidationError):
    """Raised for website requests naming an unknown action or decision."""

    @classmethod
    def for_unknown_action(cls, action: str) -> BadRequestError:
        """Build deterministic error for unsupported action tags."""
        return cls(f"Unknown action {action!r}.")

    @classmethod
    def for_unknown_decision(cls, decision: str) -> BadRequestError:
        """Build deterministic error for unsupported login alert decisions."""
        return cls(f"Unknown login alert decision {decision!r}.")


class UnauthorizedError(RelayError):
    """Raised when a caller lacks privilege or does not own a login alert."""

    @classmethod
    def for_admin_action(cls) -> UnauthorizedError:
        """Build deterministic error for non-administrator callers."""
        return cls("Unauthorized.")

    @classmethod
    def for_alert_owner(cls, alert_id: str) -> UnauthorizedError:
        """Build deterministic error for responders other than the owner."""
        return cls(f"Login alert '{alert_id}' belongs to a different user.")


class NotFoundError(RelayError):
    """Raised for unknown alert ids and missing OTP challenges."""

    @classmethod
    def for_alert(cls, alert_id: str) -> NotFoundError:
        """Build deterministic error for unknown alert ids."""
        return cls(f"Login alert not found for alert_id='{alert_id}'.")

    @classmethod
    def for_challenge(cls, identity: str) -> NotFoundError:
        """Build deterministic error for identities without an active OTP."""
        return cls(f"No active OTP challenge for identity='{identity}'.")


class AlreadyResolvedError(RelayError):
    """Signals a repeated resolution; callers answer it idempotently."""

    @classmethod
    def for_alert(cls, alert_id: str, status: str) -> AlreadyResolvedError:
        """Build deterministic error naming the existing terminal status."""
        return cls(f"Login alert '{alert_id}' is already {status}.")


class ExpiredError(RelayError):
    """Raised when a login alert or OTP challenge outlived its TTL."""

    @classmethod
    def for_alert(cls, alert_id: str) -> ExpiredError:
        """Build deterministic error for login alerts past their expiry."""
        return cls(f"Login alert expired for alert_id='{alert_id}'.")

    @classmethod
    def for_challenge(cls, identity: str) -> ExpiredError:
        """Build deterministic error for OTP challenges past their expiry."""
        return cls(f"OTP challenge expired for identity='{identity}'.")

    @classmethod
    def for_exhausted_challenge(cls, identity: str) -> ExpiredError:
        """Build deterministic error for challenges discarded after wrong guesses."""
        return cls(
            "OTP challenge discarded after too many attempts "
            f"for identity='{identity}'.",
        )


class DeliveryError(RelayError):
    """Raised when the notification channel cannot reach a recipient."""

    @classmethod
    def for_recipient(cls, identity: str, *, details: str) -> DeliveryError:
        """Build deterministic error for unreachable recipients."""
        return cls(
            f"Unable to deliver notification to identity='{identity}': {details}",
        )

    @classmethod
    def bot_unavailable(cls) -> DeliveryError:
        """Build deterministic error for a bot client that is not connected."""
        return cls("Telegram bot client is not connected.")
