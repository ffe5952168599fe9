"""Command-line interface for Memory Friend.

Provides subcommands for serving the API and for recording, asking and
summarizing from a terminal.
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

from .completion import GroqCompletionClient
from .config import Settings, load_settings
from .errors import MemoryFriendError
from .logging import configure_logger, get_logger
from .memory import MemoryManager, MemoryStore, MemoryType

T = TypeVar("T")


def build_manager(settings: Settings) -> tuple[MemoryManager, MemoryStore]:
    """Wire store, completion client and activity log from settings."""
    store = MemoryStore(settings.db_path)
    store.init_db()
    completion = GroqCompletionClient(
        api_key=settings.groq_api_key,
        model=settings.model,
        base_url=settings.base_url,
        timeout=settings.completion_timeout,
    )
    configure_logger(log_dir=settings.log_dir)
    manager = MemoryManager(
        store,
        completion,
        activity_log=get_logger(),
        recent_window=settings.recent_window,
    )
    return manager, store


def _run(manager: MemoryManager, coro: Coroutine[Any, Any, T]) -> T:
    """Run one async operation, then close the completion client in the same loop."""

    async def run() -> T:
        try:
            return await coro
        finally:
            await manager.aclose()

    return asyncio.run(run())


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from .api import create_app

    manager, store = build_manager(settings)
    try:
        uvicorn.run(
            create_app(manager),
            host=args.host or settings.host,
            port=args.port or settings.port,
        )
    finally:
        store.close()
    return 0


def cmd_add(args: argparse.Namespace, settings: Settings) -> int:
    """Record a new memory."""
    manager, store = build_manager(settings)
    try:
        memory = manager.create_memory(
            args.elder,
            args.type,
            args.text,
            image_url=args.image_url,
            tags=args.tag or [],
            emotional_tone=args.tone,
        )
    finally:
        store.close()
    _print_json(memory.to_dict())
    return 0


def cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    """List memories of an elder."""
    manager, store = build_manager(settings)
    try:
        page = manager.list_memories(
            args.elder,
            type=args.type,
            tag=args.tag,
            search=args.search,
            limit=args.limit,
            offset=args.offset,
        )
    finally:
        store.close()

    if not page.data:
        print("No memories found.")
        return 0

    print(f"\n{'ID':<6} {'Type':<12} {'Created':<24} Text")
    print("-" * 80)
    for memory in page.data:
        text = memory.raw_text.replace("\n", " ")
        if len(text) > 40:
            text = text[:37] + "..."
        print(f"{memory.id:<6} {memory.type.value:<12} {memory.created_at:<24} {text}")
    shown = page.offset + len(page.data)
    print(f"\nShowing {page.offset + 1}-{shown} of {page.total}")
    return 0


def cmd_ask(args: argparse.Namespace, settings: Settings) -> int:
    """Answer a question from the elder's memories."""
    manager, store = build_manager(settings)
    try:
        result = _run(manager, manager.ask_question(args.elder, args.question))
    finally:
        store.close()

    print(result.answer)
    if result.matched_memories:
        print("\nRelated memories:")
        for memory in result.matched_memories:
            print(f"  - [{memory.type.value}] {memory.raw_text}")
    if not result.recorded:
        print(f"\n\033[33mWarning: answer not saved to history ({result.record_error})\033[0m")
    return 0


def cmd_summarize(args: argparse.Namespace, settings: Settings) -> int:
    """Generate the daily summary."""
    manager, store = build_manager(settings)
    try:
        result = _run(manager, manager.generate_daily_summary(args.elder, args.date))
    finally:
        store.close()
    _print_json(result.to_response())
    return 0


def cmd_summaries(args: argparse.Namespace, settings: Settings) -> int:
    """Show stored daily summaries."""
    manager, store = build_manager(settings)
    try:
        summaries = manager.list_summaries(args.elder, day=args.date, limit=args.limit)
    finally:
        store.close()

    if not summaries:
        print("No summaries found.")
        return 0
    for summary in summaries:
        print(f"\033[1m{summary.date}\033[0m\n{summary.summary_text}\n")
    return 0


def cmd_questions(args: argparse.Namespace, settings: Settings) -> int:
    """Show recent questions and answers."""
    manager, store = build_manager(settings)
    try:
        questions = manager.list_questions(args.elder, limit=args.limit)
    finally:
        store.close()

    if not questions:
        print("No questions found.")
        return 0
    for question in questions:
        print(f"Q: {question.question_text}\nA: {question.answer_text or 'No answer yet'}\n")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="memory-friend",
        description="Record memories, ask questions and read daily summaries",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Port")

    # add command
    add_parser = subparsers.add_parser("add", help="Record a memory")
    add_parser.add_argument("elder", help="Elder id")
    add_parser.add_argument("text", help="Memory text")
    add_parser.add_argument(
        "-t", "--type",
        default="other",
        choices=MemoryType.values(),
        help="Memory type (default: other)",
    )
    add_parser.add_argument("--tag", action="append", help="Tag (repeatable)")
    add_parser.add_argument("--image-url", help="Photo reference")
    add_parser.add_argument("--tone", help="Emotional tone")

    # list command
    list_parser = subparsers.add_parser("list", help="List memories")
    list_parser.add_argument("elder", help="Elder id")
    list_parser.add_argument("-t", "--type", choices=MemoryType.values())
    list_parser.add_argument("--tag")
    list_parser.add_argument("-s", "--search", help="Text substring")
    list_parser.add_argument("-n", "--limit", type=int, default=50)
    list_parser.add_argument("--offset", type=int, default=0)

    # ask command
    ask_parser = subparsers.add_parser("ask", help="Ask a question")
    ask_parser.add_argument("elder", help="Elder id")
    ask_parser.add_argument("question", help="Question text")

    # summarize command
    summarize_parser = subparsers.add_parser("summarize", help="Generate a daily summary")
    summarize_parser.add_argument("elder", help="Elder id")
    summarize_parser.add_argument("-d", "--date", help="YYYY-MM-DD (default: today)")

    # summaries command
    summaries_parser = subparsers.add_parser("summaries", help="Show daily summaries")
    summaries_parser.add_argument("elder", help="Elder id")
    summaries_parser.add_argument("-d", "--date", help="YYYY-MM-DD")
    summaries_parser.add_argument("-n", "--limit", type=int, default=7)

    # questions command
    questions_parser = subparsers.add_parser("questions", help="Show recent questions")
    questions_parser.add_argument("elder", help="Elder id")
    questions_parser.add_argument("-n", "--limit", type=int, default=5)

    return parser


COMMANDS = {
    "serve": cmd_serve,
    "add": cmd_add,
    "list": cmd_list,
    "ask": cmd_ask,
    "summarize": cmd_summarize,
    "summaries": cmd_summaries,
    "questions": cmd_questions,
}


def run_cli(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    """Run the CLI with given arguments.

    Args:
        argv: Command line arguments (without program name).
        settings: Preloaded settings, loaded from disk and env if None.

    Returns:
        Exit code (0 for success).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if settings is None:
        settings = load_settings()

    try:
        return COMMANDS[args.command](args, settings)
    except MemoryFriendError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
