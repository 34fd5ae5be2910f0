"""OTP issuance, login alerts and callback payload handling."""

from .callback_data import (
    CONFIRM_VERB,
    DENY_VERB,
    CallbackAction,
    ConfirmLogin,
    DenyLogin,
    UnknownCallback,
    decode_callback,
    encode_callback,
)
from .identity import normalize_identity
from .login_alerts import (
    ACTION_CONFIRM,
    ACTION_DENY,
    LoginAlertCoordinator,
    LoginAlertOutcome,
    generate_alert_id,
)
from .otp_issuer import (
    DEFAULT_ADMIN_PURPOSE,
    DEFAULT_WEBSITE_PURPOSE,
    OTP_CODE_LENGTH,
    IssuedOtp,
    OtpIssuer,
    compute_code_digest,
    generate_otp_code,
)

__all__ = [
    "ACTION_CONFIRM",
    "ACTION_DENY",
    "CONFIRM_VERB",
    "DEFAULT_ADMIN_PURPOSE",
    "DEFAULT_WEBSITE_PURPOSE",
    "DENY_VERB",
    "OTP_CODE_LENGTH",
    "CallbackAction",
    "ConfirmLogin",
    "DenyLogin",
    "IssuedOtp",
    "LoginAlertCoordinator",
    "LoginAlertOutcome",
    "OtpIssuer",
    "UnknownCallback",
    "compute_code_digest",
    "decode_callback",
    "encode_callback",
    "generate_alert_id",
    "generate_otp_code",
    "normalize_identity",
]
