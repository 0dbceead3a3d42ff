#!/usr/bin/env python3
"""
agendabot Command Line Interface

Main entry point for the `agendabot` command.

Usage:
    agendabot ask "marcar dentista amanhã às 10h" --user alice
    agendabot ask --audio nota.ogg --mime-type audio/ogg --user alice
    agendabot serve                       # Start the webhook server
    agendabot webhook --set https://example.com/webhook/telegram
    agendabot webhook --delete
    agendabot poll                        # Long-poll Telegram instead of the webhook
    agendabot --version
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from agendabot import __version__
from agendabot.config_models import load_and_validate
from agendabot.logging_config import setup_logging


def cmd_ask(args):
    """Run one command through the orchestrator and print the result."""
    from agendabot.container import build_orchestrator

    config = load_and_validate()
    if args.store:
        config.store.backend = args.store

    if args.audio:
        audio_path = Path(args.audio)
        if not audio_path.exists():
            print(f"Audio file not found: {audio_path}", file=sys.stderr)
            return 1
        command_input = audio_path.read_bytes()
        mime_type = args.mime_type
    elif args.text:
        command_input = args.text
        mime_type = None
    else:
        print("Provide a command text or --audio", file=sys.stderr)
        return 1

    orchestrator = build_orchestrator(config)
    result = asyncio.run(orchestrator.execute(args.user, command_input, mime_type))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    else:
        icon = "✅" if result.success else "❌"
        print(f"{icon} {result.message}")
    return 0 if result.success else 1


def cmd_serve(args):
    """Start the webhook server."""
    import uvicorn

    config = load_and_validate()
    uvicorn.run(
        "agendabot.server:build_app",
        factory=True,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_config=None,
    )
    return 0


def cmd_webhook(args):
    """Register or remove the Telegram webhook."""
    from agendabot.container import build_orchestrator, build_telegram_bot

    config = load_and_validate()

    async def run() -> None:
        bot = build_telegram_bot(build_orchestrator(config), config)
        await bot.initialize()
        try:
            if args.delete:
                await bot.delete_webhook()
                print("Webhook removed.")
            else:
                await bot.set_webhook(args.set)
                print(f"Webhook set to {args.set}")
        finally:
            await bot.aclose()

    asyncio.run(run())
    return 0


def cmd_poll(args):
    """Receive Telegram updates by long polling instead of the webhook."""
    from agendabot.container import build_orchestrator, build_telegram_bot

    config = load_and_validate()
    bot = build_telegram_bot(build_orchestrator(config), config)
    application = bot.build_application()
    # Starting to poll removes any registered webhook
    application.run_polling(allowed_updates=["message"])
    return 0


def cmd_version(args):
    print(f"agendabot {__version__}")
    return 0


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="agendabot",
        description="Conversational scheduling assistant",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--log-level", default=None, help="Log level (default: AGENDABOT_LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command")

    ask_parser = subparsers.add_parser("ask", help="Run a single command")
    ask_parser.add_argument("text", nargs="?", help="Command text")
    ask_parser.add_argument("--user", required=True, help="User id issuing the command")
    ask_parser.add_argument("--audio", help="Path to an audio file instead of text")
    ask_parser.add_argument("--mime-type", default="audio/ogg", help="MIME type of --audio")
    ask_parser.add_argument("--store", choices=["sqlite", "memory"], help="Override store backend")
    ask_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    ask_parser.set_defaults(func=cmd_ask)

    serve_parser = subparsers.add_parser("serve", help="Start the webhook server")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.set_defaults(func=cmd_serve)

    webhook_parser = subparsers.add_parser("webhook", help="Manage the Telegram webhook")
    group = webhook_parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--set", metavar="URL", help="Register the webhook URL")
    group.add_argument("--delete", action="store_true", help="Remove the webhook")
    webhook_parser.set_defaults(func=cmd_webhook)

    poll_parser = subparsers.add_parser("poll", help="Receive Telegram updates by polling")
    poll_parser.set_defaults(func=cmd_poll)

    args = parser.parse_args()

    if args.version:
        return cmd_version(args)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(level=args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
