"""
Discord Bot Layer.

Handles Discord message parsing, slash commands, per-channel conversation
history and response formatting for HoopsBot.
"""

from hoopsbot.bot.client import HoopsBot

__all__ = ["HoopsBot"]
