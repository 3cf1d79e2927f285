"""
Application Wiring.

Builds the rule store, rule service, dispatcher and voice state handler
from settings. The gateway connection is owned by the caller: it feeds
GUILD_CREATE, GUILD_DELETE and VOICE_STATE_UPDATE payloads into
``Application.handler``.

Usage:
    app = await create_application()
    try:
        app.handler.handle_guild_create(guild_payload)
        await app.handler.handle_gateway_payload(voice_state_payload)
    finally:
        await app.close()
"""

from __future__ import annotations

from dataclasses import dataclass

from .core.config import VcNotifySettings, get_settings
from .core.logging import get_logger
from .errors import ConfigurationError
from .handlers.voice_state import VoiceStateHandler
from .notifications.discord_client import DiscordRestClient
from .notifications.dispatcher import NotificationDispatcher
from .notifications.remote import RemoteClient
from .services.rule_service import RuleService
from .store.sqlite import SQLiteRuleStore

logger = get_logger(__name__)


@dataclass
class Application:
    """Wired components, exposing the surface command layers may call."""

    settings: VcNotifySettings
    store: SQLiteRuleStore
    rule_service: RuleService
    dispatcher: NotificationDispatcher
    handler: VoiceStateHandler
    client: RemoteClient

    async def close(self) -> None:
        """Cancel suppression timers, then close HTTP and database resources."""
        self.dispatcher.cleanup()
        if isinstance(self.client, DiscordRestClient):
            await self.client.close()
        await self.store.close()
        logger.info("Application closed")


async def create_application(
    settings: VcNotifySettings | None = None,
    client: RemoteClient | None = None,
) -> Application:
    """
    Build and initialize all components.

    Args:
        settings: Settings to use (defaults to get_settings())
        client: Remote client; a DiscordRestClient is created when omitted

    Raises:
        ConfigurationError: No client given and no DISCORD_TOKEN configured
    """
    settings = settings or get_settings()

    if client is None:
        if not settings.discord_token:
            raise ConfigurationError("DISCORD_TOKEN is not set")
        client = DiscordRestClient(
            token=settings.discord_token,
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            channel_cache_ttl=settings.channel_cache_ttl,
        )

    settings.data_dir.mkdir(parents=True, exist_ok=True)

    store = SQLiteRuleStore(db_path=settings.resolved_db_path)
    await store.initialize()

    rule_service = RuleService(store)
    dispatcher = NotificationDispatcher.from_settings(client, settings)
    handler = VoiceStateHandler(rule_service, dispatcher)

    logger.info("Application initialized (db=%s)", settings.resolved_db_path)

    return Application(
        settings=settings,
        store=store,
        rule_service=rule_service,
        dispatcher=dispatcher,
        handler=handler,
        client=client,
    )
