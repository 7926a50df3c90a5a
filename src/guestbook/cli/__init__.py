from __future__ import annotations

import argparse
from typing import List, Optional

from guestbook.core.settings import get_settings
from guestbook.utils.logging import configure_logging

from .commands import cmd_list, cmd_post, cmd_retract, cmd_serve


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guestbook",
        description="Post and retract guestbook messages.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="Show the guestbook, newest first")
    p_list.add_argument("--output", choices=["table", "json", "jsonl"], default="table")
    p_list.set_defaults(func=cmd_list)

    p_post = sub.add_parser("post", help="Leave a message")
    p_post.add_argument("--author", required=True)
    p_post.add_argument("--body", required=True)
    p_post.add_argument("--secret", required=True, help="Needed later to retract the message")
    p_post.add_argument("--output", choices=["table", "json"], default="table")
    p_post.set_defaults(func=cmd_post)

    p_retract = sub.add_parser("retract", help="Retract your own message")
    p_retract.add_argument("entry_id", help="Remote id shown by `guestbook list`")
    p_retract.add_argument("--secret", required=True)
    p_retract.set_defaults(func=cmd_retract)

    p_serve = sub.add_parser("serve", help="Run the HTTP log gateway")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().runtime.log_level)
    args.func(args)


__all__ = ["build_parser", "main"]
