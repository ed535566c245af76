"""Sage console entry point.

A minimal UI collaborator: reads lines from stdin, submits them to the
orchestrator, and prints every conversation entry as it is appended.
"""

import asyncio
import logging

from sage.bot.app import build_core
from sage.bot.session import ConversationEntry
from sage.config import settings
from sage.errors import SageError
from sage.memory import ExportKind

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)

HELP = """Commands:
  /consent           grant the pending memory consent
  /deny              deny the pending memory consent
  /override          lift a Sentinel pause
  /export [kind]     write state, audit or manifest export (default: all)
  /forget <id>       delete a stored insight
  /insights          list stored insights
  /quit              exit"""

_PREFIX = {"user": "you", "assistant": "sage", "system": "*"}


def _print_entry(entry: ConversationEntry) -> None:
    if entry.role == "user":
        return
    print(f"{_PREFIX.get(entry.role, entry.role)}> {entry.content}")


async def _handle_command(line: str, core) -> bool:
    """Run a slash command. Returns False when the REPL should exit."""
    cmd, _, arg = line.partition(" ")
    arg = arg.strip()
    orchestrator = core.orchestrator

    match cmd:
        case "/quit" | "/exit":
            return False
        case "/help":
            print(HELP)
        case "/consent":
            result = await orchestrator.grant_consent()
            if result.reason == "no_pending_consent":
                print("* No consent request is pending.")
        case "/deny":
            result = await orchestrator.deny_consent()
            if result.reason == "no_pending_consent":
                print("* No consent request is pending.")
        case "/override":
            if not await orchestrator.override_pause():
                print("* The conversation is not paused.")
        case "/export":
            kinds = [ExportKind(arg)] if arg else list(ExportKind)
            for kind in kinds:
                path = await core.store.write_export(kind)
                print(f"* Exported {kind.value} to {path}")
        case "/forget":
            if not arg:
                print("* Usage: /forget <insight-id>")
            elif await core.store.delete_insight(arg):
                print(f"* Deleted {arg}")
            else:
                print(f"* No insight with id {arg}")
        case "/insights":
            for insight in core.store.get_insights():
                print(f"  {insight.id}  {insight.title}  [{', '.join(sorted(insight.tags))}]")
        case _:
            print(f"* Unknown command {cmd}. Type /help.")
    return True


async def run() -> None:
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty; model calls will fail")

    core = await build_core()
    core.conversation.subscribe(_print_entry)

    if await core.consent.review_due():
        print("* Memory review due. Consider revisiting what Sage is allowed to remember.")

    print("Sage is listening. Type /help for commands.")
    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, "you> ")).strip()
            except EOFError:
                break
            if not line:
                continue
            try:
                if line.startswith("/"):
                    if not await _handle_command(line, core):
                        break
                    continue
                result = await core.orchestrator.submit_message(line)
                if result.reason == "busy":
                    print("* Still working on your last message.")
            except (SageError, ValueError) as exc:
                logger.error("Command failed: %s", exc)
                print(f"* {exc}")
    finally:
        await core.shutdown()


def main() -> None:
    """Start the console collaborator."""
    logger.info("Starting Sage with model %s...", settings.claude_model)
    asyncio.run(run())


if __name__ == "__main__":
    main()
