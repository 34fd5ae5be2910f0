"""Markdown message templates sent to Telegram users."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

BRAND = "Click Wallet"

MENU_MY_WALLET: Final = "💰 My Wallet"
MENU_SEND_MONEY: Final = "💸 Send Money"
MENU_CHANGE_MPIN: Final = "🔒 Change MPIN"
MENU_SETTINGS: Final = "⚙️ Settings"
MENU_SUPPORT: Final = "📞 Support"

MAIN_MENU_LAYOUT: tuple[tuple[str, ...], ...] = (
    (MENU_MY_WALLET, MENU_SEND_MONEY),
    (MENU_CHANGE_MPIN, MENU_SETTINGS),
    (MENU_SUPPORT,),
)

CONFIRM_BUTTON_LABEL: Final = "✅ It's Me"
DENY_BUTTON_LABEL: Final = "❌ Not Me"
CONNECT_BUTTON_LABEL: Final = "🔗 Connect Telegram on Website"

MAIN_MENU_TEXT = f"🏠 **Main Menu**\n\nWelcome to {BRAND}! Choose an option:"
FALLBACK_TEXT = "I don't understand that. Please use the menu buttons or commands."
ACCESS_DENIED_TEXT = "🚫 Access Denied."
BLOCKED_TEXT = (
    "🚫 **Access Denied**\nYou are blocked from this bot. "
    "Please use the 📞 Support button to contact Admin."
)
LINK_SUCCESS_TEXT = (
    "✅ **Verification Successful!**\n\nYour account is now linked. "
    "Please return to the website, the form will fill automatically."
)
CONNECT_PROMPT_TEXT = (
    f"👋 Welcome to {BRAND}!\n\nTo use this bot and link your wallet, please "
    "visit our website and connect your Telegram account."
)
COMING_SOON_TEXT: dict[str, str] = {
    MENU_SEND_MONEY: "💸 Send money feature is coming soon!",
    MENU_CHANGE_MPIN: "🔒 Change MPIN feature is coming soon!",
    MENU_SETTINGS: "⚙️ Settings feature is coming soon!",
}
LOGIN_CONFIRMED_TEXT = "✅ **Login confirmed!** You are now logged in."
LOGIN_DENIED_TEXT = (
    "❌ **Login denied!** Your account has been logged out.\n"
    "Please change your password immediately and contact support."
)
LOGIN_EXPIRED_TEXT = (
    "⌛ **Login alert expired.** The login attempt was not approved.\n"
    "If you are trying to sign in, start again on the website."
)
ADMIN_OTP_TARGET_PROMPT = "🎯 Send the Telegram ID that should receive the OTP."
ADMIN_OTP_PURPOSE_PROMPT = "📝 Send the purpose for this OTP."
ADMIN_OTP_CANCELLED_TEXT = "✖️ Admin OTP request cancelled."
INVALID_IDENTITY_TEXT = "⚠️ That is not a valid Telegram ID. Send digits only."
DELIVERY_FAILED_TEXT = (
    "⚠️ Could not deliver the message. The user must start this bot first."
)

TOAST_CONFIRMED = "Login confirmed."
TOAST_DENIED = "Login denied."
TOAST_ALREADY_RESOLVED = "This login alert was already answered."
TOAST_EXPIRED = "This login alert has expired."
TOAST_NOT_FOUND = "This login alert is no longer available."
TOAST_NOT_OWNER = "This login alert is not yours."
TOAST_UNKNOWN = "Unknown action."

_ALERT_FIELDS: tuple[tuple[str, str], ...] = (
    ("🧭 IP Address", "ip"),
    ("🖥️ Device", "device"),
    ("🌐 Browser", "browser"),
    ("⚙️ OS", "os"),
    ("📍 Location", "location"),
)
_STATUS_LINES: dict[str, str] = {
    "approved": "✅ Confirmed by you.",
    "denied": "❌ Denied by you.",
    "timeout": "⌛ Expired without a response.",
    "undelivered": "⚠️ Alert could not be delivered.",
}


def otp_message(
    *,
    code: str,
    purpose: str,
    ttl_minutes: int,
    website_url: str | None,
) -> str:
    lines = [
        f"🎯 **{BRAND} Verification Code**",
        "",
        f"🔐 Your OTP: `{code}`",
        "",
        f"⏰ Valid for: {ttl_minutes} minutes",
    ]
    if website_url:
        lines.append(f"📱 Website: {website_url}")
    lines.extend(
        [
            f"🆔 Purpose: {_inline(purpose)}",
            "",
            "⚠️ **Do not share this code with anyone**",
            f"🔒 {BRAND} will never ask for your OTP",
        ],
    )
    return "\n".join(lines)


def admin_otp_message(*, code: str, ttl_minutes: int) -> str:
    return (
        "🎯 **Admin Requested OTP**\n\n"
        f"🔐 Your OTP: `{code}`\n\n"
        f"⏰ Valid for: {ttl_minutes} minutes"
    )


def admin_otp_sent_message(*, identity: str, purpose: str) -> str:
    return f"✅ OTP sent to `{identity}` for purpose: {_inline(purpose)}."


def login_alert_message(
    *,
    context: Mapping[str, str],
    created_at: int,
    support_handle: str,
) -> str:
    """Render the alert body shown above the confirm/deny buttons."""
    lines = ["🚨 **New Login Alert!**", ""]
    for label, key in _ALERT_FIELDS:
        value = context.get(key) or "Unknown"
        if key == "ip":
            lines.append(f"{label}: `{_inline(value)}`")
        else:
            lines.append(f"{label}: {_inline(value)}")
    lines.append(f"🗓️ Timestamp: {_format_epoch(created_at)}")
    lines.extend(
        [
            "",
            "⚠️ If this wasn't you:",
            f"📩 Please contact the admin {support_handle}.",
            "🔐 Stay safe!",
        ],
    )
    return "\n".join(lines)


def resolved_alert_message(
    *,
    context: Mapping[str, str],
    created_at: int,
    support_handle: str,
    outcome: str,
) -> str:
    """Render the alert body again with its final status and no controls."""
    body = login_alert_message(
        context=context,
        created_at=created_at,
        support_handle=support_handle,
    )
    status_line = _STATUS_LINES.get(outcome, outcome)
    return f"{body}\n\n**Status:** {status_line}"


def welcome_message(*, identity: str, display_name: str) -> str:
    return (
        f"🤖 **{BRAND} Alert Bot** 🤖\n"
        f"👋 Welcome, {_inline(display_name)}\n"
        f"🆔 Your User ID: `{identity}`\n\n"
        f"🔔 This bot will send you important alerts about your {BRAND} activity.\n"
        "📱 Stay connected for a seamless banking experience!"
    )


def wallet_summary_message(
    *,
    identity: str,
    linked: bool,
    registered_at: int | None,
    website_url: str | None,
) -> str:
    if not linked:
        register_hint = f"{website_url}/login.php" if website_url else "the website"
        return (
            f"⚠️ **No {BRAND} Account Found!**\n\n"
            f"Your Telegram ID: `{identity}` is not linked to a wallet account.\n\n"
            f"Please complete your registration on {register_hint}"
        )
    registered = _format_epoch(registered_at) if registered_at is not None else "N/A"
    return (
        f"👤 **Your {BRAND} Link:**\n"
        f"🆔 Telegram ID: `{identity}`\n"
        f"🕒 Linked On: {registered}\n\n"
        "Balance and transfers are available on the website."
    )


def support_message(*, support_handle: str) -> str:
    return f"📞 For support, please contact {support_handle}."


_INLINE_TRANSLATION: Final = str.maketrans(
    {
        "`": "'",
        "_": " ",
        "~": "-",
        "*": None,
        "[": None,
        "]": None,
        "(": None,
        ")": None,
    },
)


def _inline(value: str) -> str:
    """Strip characters that would open Markdown spans or links in caller text."""
    return value.translate(_INLINE_TRANSLATION).strip()


def _format_epoch(epoch: int) -> str:
    return datetime.fromtimestamp(epoch, tz=UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
