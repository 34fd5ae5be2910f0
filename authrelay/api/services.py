"""App-scoped service graph built once per lifespan."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from authrelay.auth import LoginAlertCoordinator, OtpIssuer
from authrelay.routing import InteractionRouter, WebsiteActionRouter
from authrelay.storage import (
    ConversationStateRepository,
    LoginSessionsRepository,
    OtpChallengesRepository,
    UserLinksRepository,
)

if TYPE_CHECKING:
    from fastapi import Request

    from authrelay.config.settings import AppSettings
    from authrelay.storage import StorageRuntime, WriterQueueProtocol
    from authrelay.telegram import NotificationDispatcher


@dataclass(frozen=True, slots=True)
class RelayServices:
    """Services shared by the HTTP routes and the bot update handler."""

    otp_issuer: OtpIssuer
    login_alerts: LoginAlertCoordinator
    website_actions: WebsiteActionRouter
    interactions: InteractionRouter


def build_relay_services(
    *,
    settings: AppSettings,
    runtime: StorageRuntime,
    writer_queue: WriterQueueProtocol,
    dispatcher: NotificationDispatcher,
) -> RelayServices:
    """Wire repositories, auth services and routers over one storage runtime."""
    session_factories = {
        "read_session_factory": runtime.read_session_factory,
        "write_session_factory": runtime.write_session_factory,
    }
    otp_issuer = OtpIssuer(
        repository=OtpChallengesRepository(**session_factories),
        dispatcher=dispatcher,
        writer_queue=writer_queue,
        website_url=settings.website_url,
    )
    login_alerts = LoginAlertCoordinator(
        repository=LoginSessionsRepository(**session_factories),
        dispatcher=dispatcher,
        writer_queue=writer_queue,
        support_handle=settings.support_handle,
    )
    return RelayServices(
        otp_issuer=otp_issuer,
        login_alerts=login_alerts,
        website_actions=WebsiteActionRouter(
            otp_issuer=otp_issuer,
            login_alerts=login_alerts,
            admin_identity=settings.admin_identity,
        ),
        interactions=InteractionRouter(
            links=UserLinksRepository(**session_factories),
            conversations=ConversationStateRepository(**session_factories),
            otp_issuer=otp_issuer,
            login_alerts=login_alerts,
            dispatcher=dispatcher,
            writer_queue=writer_queue,
            admin_identity=settings.admin_identity,
            website_url=settings.website_url,
            support_handle=settings.support_handle,
        ),
    )


def resolve_services(request: Request) -> RelayServices:
    """Load the service graph from app state with an explicit failure mode."""
    state_obj = cast("object", request.app.state)
    services_obj = getattr(state_obj, "services", None)
    if not isinstance(services_obj, RelayServices):
        message = "Missing app services: app.state.services."
        raise TypeError(message)
    return services_obj
