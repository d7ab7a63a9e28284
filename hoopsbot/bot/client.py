"""
HoopsBot - discord.py bot client.

Manages the full bot lifecycle:
- Initializes shared services (ESPN client, data operations, orchestrator,
  throttle) once at startup
- Loads the StatsCog
- Syncs slash commands (guild-local for dev, global for production)
- Cleans up all resources on shutdown via AsyncExitStack
"""

from __future__ import annotations

import discord
from contextlib import AsyncExitStack

from discord.ext import commands

from hoopsbot.chat import ChatService, RequestThrottle
from hoopsbot.config.logging import get_logger
from hoopsbot.config.settings import Settings
from hoopsbot.llm import ConversationOrchestrator, ToolDispatcher
from hoopsbot.prompts import load_system_template
from hoopsbot.tools.espn import ESPNClient
from hoopsbot.tools.nba import build_nba_registry

logger = get_logger(__name__)


def build_chat_service(settings: Settings, espn: ESPNClient) -> ChatService:
    """Wire registry → dispatcher → orchestrator → throttled chat service."""
    registry = build_nba_registry(espn)
    orchestrator = ConversationOrchestrator(
        settings=settings.llm,
        system_template=load_system_template(),
        dispatcher=ToolDispatcher(registry),
        history_limit=settings.chat.history_limit,
    )
    throttle = RequestThrottle(cooldown_ms=settings.chat.cooldown_ms)
    return ChatService(orchestrator, throttle)


class HoopsBot(commands.Bot):
    """
    Discord bot for NBA statistics questions.

    Holds shared application state (the chat service) and exposes it to
    cogs. All async resources are managed via AsyncExitStack so they're
    properly cleaned up when the bot shuts down.

    Args:
        settings: Full application settings (bot token, LLM config, ESPN config, etc.)
    """

    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        intents.message_content = True  # Required to read message text for mention handling
        super().__init__(
            command_prefix=settings.bot.command_prefix,
            intents=intents,
        )
        self.settings = settings
        self.chat_service: ChatService | None = None
        self._exit_stack = AsyncExitStack()

    async def setup_hook(self) -> None:
        """
        Called after login, before connecting to the Gateway.

        Initializes all services, loads cogs, and syncs slash commands.
        """
        # --- 1. ESPN client (long-lived connection pool) ---
        espn = await self._exit_stack.enter_async_context(ESPNClient(self.settings.espn))
        logger.info("ESPN client ready")

        # --- 2. Orchestrator + throttle ---
        self.chat_service = build_chat_service(self.settings, espn)
        logger.info(
            f"Chat service ready (model: {self.settings.llm.model}, "
            f"cooldown: {self.settings.chat.cooldown_ms}ms)"
        )

        # --- 3. Load cogs ---
        from hoopsbot.bot.cogs.stats import StatsCog
        await self.add_cog(StatsCog(self))
        logger.info("Cogs loaded")

        # --- 4. Sync slash commands ---
        try:
            if self.settings.bot.dev_guild_id:
                guild = discord.Object(id=self.settings.bot.dev_guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info(f"Slash commands synced to dev guild {self.settings.bot.dev_guild_id} (instant)")
            else:
                await self.tree.sync()
                logger.info("Slash commands synced globally (may take up to 1 hour to propagate)")
        except discord.errors.Forbidden:
            logger.warning(
                "Could not sync slash commands (403 Forbidden). "
                "Re-invite the bot with both 'bot' and 'applications.commands' scopes. "
                "The bot will still respond to @mentions while slash commands are unavailable."
            )
        except Exception as e:
            logger.warning(f"Slash command sync failed: {e}. The bot will still start.")

    async def on_ready(self) -> None:
        """Called when the bot successfully connects to Discord."""
        logger.info(f"Logged in as {self.user} (id: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self) -> None:
        """Graceful shutdown - clean up all async resources before disconnecting."""
        logger.info("Shutting down HoopsBot...")
        await self._exit_stack.aclose()
        await super().close()

    def is_allowed_channel(self, channel_id: int) -> bool:
        """
        Return True if the bot should respond in this channel.

        If `allowed_channel_ids` is empty (the default), the bot responds everywhere.
        """
        allowed = self.settings.bot.allowed_channel_ids
        return not allowed or channel_id in allowed
