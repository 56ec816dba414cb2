"""Dashboard data: the current user, the optional server config and the
SMTP/API credential panels built from them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from inmail_client.api import InMailClient
from inmail_client.config import Settings
from inmail_client.exceptions import RequestFailedError, ValidationError
from inmail_client.models import AdminConfig, User

logger = structlog.get_logger()

DASHBOARD_FAILED = "Failed to load dashboard data"
MASKED_PASSWORD = "••••••••"


@dataclass(frozen=True)
class CredentialPanel:
    """Connection details for one environment."""

    environment: str
    description: str
    smtp_host: str
    smtp_port: int
    api_url: str
    web_url: str
    username: str
    password: str
    password_revealed: bool
    mailbox_name: str | None = None
    proxy_url: str | None = None


@dataclass
class DashboardData:
    """Result of loading the dashboard."""

    user: User | None = None
    config: AdminConfig | None = None
    error: str | None = None
    panels: list[CredentialPanel] = field(default_factory=list)


def build_credential_panels(
    user: User,
    config: AdminConfig | None,
    settings: Settings,
) -> list[CredentialPanel]:
    """Build the Docker and host credential panels.

    The root password is only revealed to root users and only when the
    server config exposes it. The mailbox name is shown to non-root users.
    """

    smtp_port = (config.smtp_port if config else None) or settings.default_smtp_port
    root_password = config.root_password if config and user.is_root else None
    password = root_password or MASKED_PASSWORD
    mailbox_name = None if user.is_root else user.mailbox_name

    return [
        CredentialPanel(
            environment="docker",
            description="For applications running in Docker containers on the inmail network",
            smtp_host=settings.docker_smtp_host,
            smtp_port=smtp_port,
            api_url=settings.docker_api_url,
            web_url=settings.docker_web_url,
            username=user.username,
            password=password,
            password_revealed=root_password is not None,
            mailbox_name=mailbox_name,
        ),
        CredentialPanel(
            environment="host",
            description="For applications running on the host machine",
            smtp_host=settings.host_smtp_host,
            smtp_port=smtp_port,
            api_url=settings.host_api_url,
            web_url=settings.host_web_url,
            username=user.username,
            password=password,
            password_revealed=root_password is not None,
            mailbox_name=mailbox_name,
            proxy_url=settings.proxy_url,
        ),
    ]


class DashboardLoader:
    """Loads everything the dashboard shows."""

    def __init__(self, client: InMailClient, settings: Settings | None = None) -> None:
        from inmail_client.config import get_settings

        self._client = client
        self.settings = settings or get_settings()

    async def load(self) -> DashboardData:
        """Fetch the current user and the server config concurrently.

        The config is root-only; any failure to fetch it other than an expired
        session leaves ``config`` as None without reporting an error.
        ``AuthExpiredError`` from either call propagates.
        """

        user_result, config_result = await asyncio.gather(
            self._client.get_current_user(),
            self._load_config(),
            return_exceptions=True,
        )

        for result in (user_result, config_result):
            if isinstance(result, BaseException) and not isinstance(
                result, (RequestFailedError, ValidationError)
            ):
                raise result

        if isinstance(user_result, BaseException):
            logger.warning("dashboard_user_failed", error=str(user_result))
            server_message = getattr(user_result, "server_message", None)
            return DashboardData(error=server_message or DASHBOARD_FAILED)

        config = config_result if isinstance(config_result, AdminConfig) else None
        logger.info("dashboard_loaded", username=user_result.username, has_config=config is not None)
        return DashboardData(
            user=user_result,
            config=config,
            panels=build_credential_panels(user_result, config, self.settings),
        )

    async def _load_config(self) -> AdminConfig | None:
        try:
            return await self._client.get_admin_config()
        except (RequestFailedError, ValidationError) as exc:
            logger.debug("admin_config_unavailable", error=str(exc))
            return None
