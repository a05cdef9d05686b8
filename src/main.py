"""Interactive console for trying out a script directory.

Usage:
    python -m src.main path/to/brain [--user NAME]

Type /quit to leave, /dump to print the sort buffers.
"""

import argparse
import sys

from src.config import settings
from src.core.engine import RiveScript
from src.core.logging import get_logger, setup_logging

setup_logging(settings.LOG_LEVEL, debug=settings.DEBUG)
logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Chat with a script directory")
    parser.add_argument("path", help="directory (or single file) of .rive scripts")
    parser.add_argument("--user", default="localuser", help="user id to chat as")
    args = parser.parse_args(argv)

    bot = RiveScript(settings)
    if not bot.load_directory(args.path) and not bot.load_file(args.path):
        logger.error("Nothing to load from %s", args.path)
        return 1
    bot.sort_replies()

    print("Type /quit to exit.")
    for line in sys.stdin:
        message = line.strip()
        if message == "/quit":
            break
        if message == "/dump":
            print(bot.dump_sorted())
            continue
        print("Bot>", bot.reply(args.user, message))
    return 0


if __name__ == "__main__":
    sys.exit(main())
