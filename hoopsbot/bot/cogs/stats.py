"""
StatsCog - NBA questions via /ask and @mention.

Entry points:
  - /ask question:<str>      (slash command)
  - @HoopsBot <question>     (mention in any message)
  - /reset                   (forget this channel's conversation)
  - /examples                (suggested questions)

/ask and mentions share _answer(), which sends the question and the
channel's recent conversation through the ChatService and returns a
discord.Embed. Each user is a separate throttle session; each channel keeps
its own conversation history, capped at the most recent
``chat.retained_messages`` entries.
"""

from __future__ import annotations

import re

import discord
from discord import app_commands
from discord.ext import commands

from hoopsbot.chat import ChatRequest, ChatResponse, HistoryEntry
from hoopsbot.config.logging import get_logger

logger = get_logger(__name__)

# Matches <@USER_ID> and <@!USER_ID> (standard Discord mention formats)
_MENTION_RE = re.compile(r"<@!?\d+>")

EXAMPLE_QUESTIONS = (
    "Show me LeBron James stats this season",
    "What was the score of the latest Lakers game?",
    "Show me the current NBA standings",
    "Tell me about Steph Curry",
)


def _error_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.red(),
    )


class StatsCog(commands.Cog):
    """Handles NBA statistics questions via /ask and @mention."""

    def __init__(self, bot) -> None:
        self.bot = bot
        self._histories: dict[int, list[HistoryEntry]] = {}

    def history_for(self, channel_id: int) -> list[HistoryEntry]:
        return list(self._histories.get(channel_id, []))

    def _remember(self, channel_id: int, question: str, answer: str) -> None:
        entries = self._histories.get(channel_id, [])
        entries = [
            *entries,
            HistoryEntry(role="user", content=question),
            HistoryEntry(role="assistant", content=answer),
        ]
        # Newest entries only; older turns roll off
        self._histories[channel_id] = entries[-self.bot.settings.chat.retained_messages:]

    # ------------------------------------------------------------------
    # Slash commands
    # ------------------------------------------------------------------

    @app_commands.command(name="ask", description="Ask an NBA statistics question")
    @app_commands.describe(question="Your NBA question")
    async def ask(self, interaction: discord.Interaction, question: str) -> None:
        """
        /ask question:<your question>

        The LLM may look up scores, standings, schedules or player stats
        before answering.
        """
        if not self.bot.is_allowed_channel(interaction.channel_id):
            await interaction.response.send_message(
                "I'm not configured to respond in this channel.", ephemeral=True
            )
            return

        # Defer immediately - two model calls plus ESPN lookups exceed Discord's 3s limit
        await interaction.response.defer()

        embed = await self._answer(question, interaction.user.id, interaction.channel_id)
        await interaction.followup.send(embed=embed)

    @app_commands.command(name="reset", description="Forget this channel's conversation")
    async def reset(self, interaction: discord.Interaction) -> None:
        self._histories.pop(interaction.channel_id, None)
        await interaction.response.send_message("Conversation cleared.", ephemeral=True)

    @app_commands.command(name="examples", description="Show example questions")
    async def examples(self, interaction: discord.Interaction) -> None:
        lines = "\n".join(f"• {q}" for q in EXAMPLE_QUESTIONS)
        await interaction.response.send_message(f"Try asking:\n{lines}", ephemeral=True)

    # ------------------------------------------------------------------
    # Mention listener
    # ------------------------------------------------------------------

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """
        Respond to @HoopsBot <question> mentions.

        Ignores messages from bots, messages that don't mention this bot, and
        messages in non-allowed channels.
        """
        if message.author.bot:
            return
        if not self.bot.user.mentioned_in(message):
            return
        if not self.bot.is_allowed_channel(message.channel.id):
            return

        question = _strip_mention(message.clean_content, self.bot.user)
        if not question:
            await message.reply(
                "What's your question? (e.g. `@HoopsBot Who leads the West?`)"
            )
            return

        async with message.channel.typing():
            embed = await self._answer(question, message.author.id, message.channel.id)

        await message.reply(embed=embed)

    # ------------------------------------------------------------------
    # Shared answer pipeline
    # ------------------------------------------------------------------

    async def _answer(self, question: str, user_id: int, channel_id: int) -> discord.Embed:
        """
        Run the chat service and return a formatted Embed.

        Returns an error embed on failure rather than raising, so the bot
        never crashes on a bad query.
        """
        request = ChatRequest(query=question, conversation_history=self.history_for(channel_id))
        try:
            result: ChatResponse = await self.bot.chat_service.handle(request, session_id=user_id)
        except Exception as e:
            logger.exception(f"Unexpected error answering {question!r}: {e}")
            return _error_embed("Error", "Something went wrong. Please try again.")

        if result.throttled:
            return _error_embed("Slow down", result.response)

        self._remember(channel_id, question, result.response)

        embed = discord.Embed(
            title=question[:256],
            description=result.response[:4096],
            color=discord.Color.orange(),
        )

        details = result.details
        if details and details.tool_calls:
            lookups = "\n".join(
                f"• `{tc.name}`" + (" (no data)" if tc.is_error else "")
                for tc in details.tool_calls
            )
            embed.add_field(name="ESPN Lookups", value=lookups[:1024], inline=False)

        if details and details.model:
            embed.set_footer(text=f"{details.usage.total_tokens} tokens | {details.model}")
        return embed


def _strip_mention(text: str, bot_user: discord.ClientUser) -> str:
    """
    Remove all @mentions from text and return the trimmed remainder.

    Handles both the clean-text form (@DisplayName) and the raw Discord
    form (<@USER_ID> / <@!USER_ID>).
    """
    text = _MENTION_RE.sub("", text)
    text = text.replace(f"@{bot_user.display_name}", "")
    return text.strip()
