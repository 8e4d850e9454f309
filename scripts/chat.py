#!/usr/bin/env python3
"""
Terminal chat against a running relay server.

Usage examples:
  python chat.py
  python chat.py --rag --index docs --top-k 3 --show-search

Enter sends the line; an empty line is ignored. Ctrl-D or Ctrl-C quits.
"""
import argparse
import json
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from playground.client.session import ChatSession
from playground.core.logging import get_logger

logger = get_logger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Chat with the LLM relay from a terminal")
    parser.add_argument("--url", default="http://localhost:8000", help="Relay server base URL")
    parser.add_argument("--rag", action="store_true", help="Use the RAG relay")
    parser.add_argument("--index", "-i", help="Vector collection for --rag")
    parser.add_argument("--top-k", "-k", type=int, default=10, help="Passages to retrieve for --rag")
    parser.add_argument("--show-search", action="store_true", help="Print the search result (debug)")

    args = parser.parse_args()

    if args.rag and not args.index:
        parser.error("--rag requires --index")

    printed = {"length": 0}

    def on_content(text_so_far: str):
        sys.stdout.write(text_so_far[printed["length"]:])
        sys.stdout.flush()
        printed["length"] = len(text_so_far)

    def on_search_result(result):
        if args.show_search:
            print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))

    session = ChatSession(base_url=args.url, on_content=on_content, on_search_result=on_search_result)

    while True:
        try:
            text = input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            return 0

        printed["length"] = 0
        try:
            message = session.send(text, rag=args.rag, search_index=args.index, top_k=args.top_k)
        except KeyboardInterrupt:
            print()
            return 0
        if printed["length"]:
            print()
        if message is None and text.strip():
            print("[incomplete response]", file=sys.stderr)


if __name__ == "__main__":
    raise SystemExit(main())
