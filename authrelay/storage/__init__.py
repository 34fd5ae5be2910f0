"""Storage module for AuthRelay."""

from .conversation_state_repo import (
    CONVERSATION_STEP_TTL_SECONDS,
    ConversationStateRecord,
    ConversationStateRepository,
)
from .db import (
    StorageRuntime,
    build_sqlite_url,
    create_session_factory,
    create_storage_runtime,
    dispose_storage_runtime,
)
from .login_sessions_repo import (
    LOGIN_SESSION_TTL_SECONDS,
    RESOLUTION_TIMEOUT,
    RESOLUTION_UNDELIVERED,
    RESOLUTION_USER,
    STATUS_APPROVED,
    STATUS_DENIED,
    STATUS_PENDING,
    LoginSessionRecord,
    LoginSessionsRepository,
    LoginSessionsRepositoryError,
)
from .migrations import (
    MigrationRunnerDependency,
    MigrationStartupError,
    run_startup_migrations,
    upgrade_database,
)
from .otp_challenges_repo import (
    OTP_CHALLENGE_TTL_SECONDS,
    OTP_MAX_ATTEMPTS,
    OtpChallengeRecord,
    OtpChallengesRepository,
)
from .row_decoding import RowDecodeError
from .user_links_repo import (
    LINK_STATUS_BLOCKED,
    LINK_STATUS_LINKED,
    LINK_STATUS_UNLINKED,
    UserLinkRecord,
    UserLinksRepository,
    UserLinksRepositoryError,
)
from .writer_queue import (
    WriterQueue,
    WriterQueueClosedError,
    WriterQueueProtocol,
)

__all__ = [
    "CONVERSATION_STEP_TTL_SECONDS",
    "LINK_STATUS_BLOCKED",
    "LINK_STATUS_LINKED",
    "LINK_STATUS_UNLINKED",
    "LOGIN_SESSION_TTL_SECONDS",
    "OTP_CHALLENGE_TTL_SECONDS",
    "OTP_MAX_ATTEMPTS",
    "RESOLUTION_TIMEOUT",
    "RESOLUTION_UNDELIVERED",
    "RESOLUTION_USER",
    "STATUS_APPROVED",
    "STATUS_DENIED",
    "STATUS_PENDING",
    "ConversationStateRecord",
    "ConversationStateRepository",
    "LoginSessionRecord",
    "LoginSessionsRepository",
    "LoginSessionsRepositoryError",
    "MigrationRunnerDependency",
    "MigrationStartupError",
    "OtpChallengeRecord",
    "OtpChallengesRepository",
    "RowDecodeError",
    "StorageRuntime",
    "UserLinkRecord",
    "UserLinksRepository",
    "UserLinksRepositoryError",
    "WriterQueue",
    "WriterQueueClosedError",
    "WriterQueueProtocol",
    "build_sqlite_url",
    "create_session_factory",
    "create_storage_runtime",
    "dispose_storage_runtime",
    "run_startup_migrations",
    "upgrade_database",
]
