#!/usr/bin/env python3
"""Run context selection over a stored conversation history file.

Usage examples:
    # Semantic selection with settings from .env
    uv run python scripts/select_context.py history.json "What is the status of feature X?"

    # Recency only, no embedding calls
    uv run python scripts/select_context.py history.json "status?" --time-based --max-turns 6

    # Write the backfilled embeddings back to the file
    uv run python scripts/select_context.py history.json "status?" --save-embeddings
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config import settings
from src.context.config import ConversationContextConfig
from src.context.embeddings import OpenAIEmbeddingClient
from src.context.models import HistoryFormatError, dump_history, parse_history
from src.context.selector import (
    ContextSelector,
    SemanticContextSelector,
    TimeBasedContextSelector,
)

logger = logging.getLogger("select_context")


def build_selector(args: argparse.Namespace) -> ContextSelector:
    """Create the selector requested on the command line."""
    config = ConversationContextConfig.from_settings(settings)
    if args.max_turns is not None:
        config = ConversationContextConfig(**{**config.model_dump(), "max_context_turns": args.max_turns})

    if args.time_based:
        return TimeBasedContextSelector(config.max_context_turns)
    return SemanticContextSelector(OpenAIEmbeddingClient(), config)


async def run(args: argparse.Namespace) -> int:
    path = Path(args.history)
    try:
        history = parse_history(path.read_text(encoding="utf-8"))
    except (OSError, HistoryFormatError) as exc:
        print(f"ERROR: could not read history from {path}: {exc}", file=sys.stderr)
        return 1

    try:
        selector = build_selector(args)
    except ValidationError as exc:
        print(f"ERROR: invalid context configuration: {exc}", file=sys.stderr)
        return 1

    selected = await selector.select(args.query, history)

    for message in selected:
        ts = message.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        print(f"[{ts}] {message.role:<9} {message.content}")
    print(f"\n{len(selected)} of {len(history)} messages selected")

    if args.save_embeddings:
        path.write_text(dump_history(history), encoding="utf-8")
        logger.info("Saved embeddings back to %s", path)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Select conversation context for a query")
    parser.add_argument("history", help="Path to a JSON list of conversation messages")
    parser.add_argument("query", help="Current user query")
    parser.add_argument("--time-based", action="store_true", help="Recency only, no embeddings")
    parser.add_argument("--max-turns", type=int, default=None, help="Override max context turns")
    parser.add_argument(
        "--save-embeddings",
        action="store_true",
        help="Write backfilled embeddings back to the history file",
    )
    args = parser.parse_args()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level),
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
