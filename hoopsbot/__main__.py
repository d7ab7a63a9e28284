"""
HoopsBot CLI entry point.

Provides command-line interface for running the bot and utility commands.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from hoopsbot import __version__
from hoopsbot.config.logging import get_logger, setup_logging
from hoopsbot.config.settings import Settings, load_settings

CLI_SESSION = "cli"


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="hoopsbot",
        description="LLM-powered NBA statistics assistant backed by ESPN data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"HoopsBot {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Run the Discord bot")
    subparsers.add_parser("config", help="Show current configuration")
    subparsers.add_parser("operations", help="List the data operations the LLM can call")

    ask_parser = subparsers.add_parser(
        "ask",
        help="Ask a single NBA question",
    )
    ask_parser.add_argument(
        "question",
        help='Question to ask, e.g. "What was the score of the latest Lakers game?"',
    )
    ask_parser.add_argument(
        "--show-tools",
        action="store_true",
        help="Print the data operations the model called and their results",
    )

    subparsers.add_parser(
        "chat",
        help="Start an interactive conversation (type 'exit' to quit, 'reset' to clear history)",
    )

    return parser


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)

    logger.info("\n=== HoopsBot Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nBot Name: {settings.bot.name}")
    logger.info(f"Command Prefix: {settings.bot.command_prefix}")
    logger.info(f"Discord Token: {'Set' if settings.bot.token else 'Not set'}")
    logger.info(f"\nLLM Model: {settings.llm.model}")
    logger.info(f"LLM API Key: {'Set' if settings.llm.api_key else 'Not set'}")
    logger.info(f"LLM Max Tokens: {settings.llm.max_tokens}")
    logger.info(f"\nESPN Site API: {settings.espn.site_api_base}")
    logger.info(f"ESPN Web API: {settings.espn.site_web_api_base}")
    logger.info(f"ESPN Timeout: {settings.espn.timeout_seconds}s")
    logger.info(f"\nHistory Limit: {settings.chat.history_limit} messages")
    logger.info(f"Cooldown: {settings.chat.cooldown_ms}ms")

    return 0


def cmd_operations() -> int:
    """Print every registered data operation with its arguments."""
    from hoopsbot.tools.espn import ESPNClient
    from hoopsbot.tools.nba import build_nba_registry

    registry = build_nba_registry(ESPNClient())
    print(f"\n=== Data Operations ({len(registry)}) ===")
    for tool in registry.list_tools():
        properties = tool["input_schema"].get("properties", {})
        required = set(tool["input_schema"].get("required", []))
        args = ", ".join(
            name if name in required else f"{name}?"
            for name in properties
        )
        print(f"\n{tool['name']}({args})")
        print(f"    {tool['description']}")
    return 0


def cmd_run(settings: Settings) -> int:
    """Start the Discord bot."""
    logger = get_logger(__name__)

    if not settings.bot.token:
        logger.error(
            "Discord bot token not set. Add BOT__TOKEN=<your-token> to your .env file."
        )
        return 1

    if not settings.llm.api_key:
        logger.warning(
            "LLM API key not set (LLM__API_KEY). "
            "The bot will start but /ask will fail until this is configured."
        )

    from hoopsbot.bot import HoopsBot

    bot = HoopsBot(settings)
    logger.info(f"Starting {settings.bot.name}...")
    # log_handler=None: disable discord.py's default logging setup and use ours
    bot.run(settings.bot.token, log_handler=None)
    return 0


async def cmd_ask(args, settings: Settings) -> int:
    """
    Answer one question and print it.

    Runs the same chat service the Discord bot uses, with an empty history.
    """
    from hoopsbot.bot.client import build_chat_service
    from hoopsbot.chat import ChatRequest
    from hoopsbot.tools.espn import ESPNClient

    logger = get_logger(__name__)

    if not settings.llm.api_key:
        print("LLM API key not set. Set LLM__API_KEY in your .env file.", file=sys.stderr)
        return 1

    try:
        async with ESPNClient(settings.espn) as espn:
            service = build_chat_service(settings, espn)
            logger.info(f"Sending to {settings.llm.model}...")
            result = await service.handle(ChatRequest(query=args.question), session_id=CLI_SESSION)
    except Exception as e:
        logger.error(f"Query failed: {e}", exc_info=True)
        return 1

    print("\n=== HoopsBot ===")
    print(f"Q: {args.question}\n")
    print(result.response)

    details = result.details
    if details and details.tool_calls and args.show_tools:
        print("\n--- Tool Calls ---")
        for tc in details.tool_calls:
            print(f"  {tc.name}({tc.arguments}) → {tc.result[:300]}")

    if details and details.model:
        print(f"\nTokens: {details.usage.total_tokens} "
              f"(prompt {details.usage.prompt_tokens} "
              f"+ completion {details.usage.completion_tokens})")

    return 1 if details is not None and details.degraded else 0


async def cmd_chat(settings: Settings) -> int:
    """Interactive conversation; history lives in this loop, not in the service."""
    from hoopsbot.bot.client import build_chat_service
    from hoopsbot.chat import ChatRequest, HistoryEntry
    from hoopsbot.tools.espn import ESPNClient

    if not settings.llm.api_key:
        print("LLM API key not set. Set LLM__API_KEY in your .env file.", file=sys.stderr)
        return 1

    history: list[HistoryEntry] = []
    print("HoopsBot - ask about NBA scores, standings and players. "
          "Type 'reset' to start over or 'exit' to quit.")

    async with ESPNClient(settings.espn) as espn:
        service = build_chat_service(settings, espn)
        while True:
            try:
                query = (await asyncio.to_thread(input, "\nYou: ")).strip()
            except (EOFError, KeyboardInterrupt):
                print()
                return 0

            if query.lower() in {"exit", "quit"}:
                return 0
            if query.lower() == "reset":
                history = []
                print("Conversation cleared.")
                continue
            if not query:
                continue

            result = await service.handle(
                ChatRequest(query=query, conversation_history=history),
                session_id=CLI_SESSION,
            )
            print(f"\nHoopsBot: {result.response}")
            if not result.throttled:
                history = [
                    *history,
                    HistoryEntry(role="user", content=query),
                    HistoryEntry(role="assistant", content=result.response),
                ][-settings.chat.retained_messages:]


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "operations":
        return cmd_operations()
    elif args.command == "run":
        return cmd_run(settings)
    elif args.command == "ask":
        return asyncio.run(cmd_ask(args, settings))
    elif args.command == "chat":
        return asyncio.run(cmd_chat(settings))
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
