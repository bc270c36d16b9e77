#!/usr/bin/env python3
"""
KwikPost command-line client

Logs in, keeps the session between runs and prints normalized API responses
as JSON.
"""

import argparse
import asyncio
import getpass
import json
import sys
from typing import Any, List, Optional

import structlog

from kwikpost.app import KwikPostClient
from kwikpost.config import Settings, get_settings
from kwikpost.logging_config import configure_logging
from shared.exceptions import KwikPostError
from shared.models import Credentials

logger = structlog.get_logger(__name__)


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def _print(value: Any) -> None:
    print(json.dumps(_to_jsonable(value), ensure_ascii=False, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kwikpost", description="KwikPost API client")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Start a session")
    login.add_argument("username")
    login.add_argument("--password", help="Prompted for when omitted")

    sub.add_parser("logout", help="End the session")
    sub.add_parser("whoami", help="Show the current session")

    user = sub.add_parser("user", help="Show a user profile")
    user.add_argument("username")

    user_posts = sub.add_parser("user-posts", help="List a user's posts")
    user_posts.add_argument("username")
    user_posts.add_argument("--limit", type=int, default=10)
    user_posts.add_argument("--offset", type=int, default=0)

    posts = sub.add_parser("posts", help="List the timeline")
    posts.add_argument("--limit", type=int, default=10)
    posts.add_argument("--offset", type=int, default=0)

    post = sub.add_parser("post", help="Show a post")
    post.add_argument("post_id")

    create = sub.add_parser("create-post", help="Publish a post")
    create.add_argument("content")

    update = sub.add_parser("update-post", help="Edit a post")
    update.add_argument("post_id")
    update.add_argument("content")

    delete = sub.add_parser("delete-post", help="Delete a post")
    delete.add_argument("post_id")

    reply = sub.add_parser("reply", help="Reply to a post")
    reply.add_argument("post_id")
    reply.add_argument("content")

    sub.add_parser("routes", help="Show where navigating to a path would land").add_argument("path")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> int:
    async with KwikPostClient(settings) as client:
        session, gateway = client.session, client.gateway

        if args.command == "login":
            password = args.password or getpass.getpass("Password: ")
            result = await session.login(Credentials(username=args.username, password=password))
            _print(result)
            return 0 if result.success else 1

        if args.command == "logout":
            await session.logout()
            return 0

        if args.command == "whoami":
            _print({"isAuthenticated": session.is_authenticated, "user": _to_jsonable(session.user)})
            return 0

        if args.command == "routes":
            route = client.navigator.navigate(args.path)
            _print({"path": route.path, "name": route.name, "params": dict(route.params)})
            return 0

        if args.command == "user":
            _print(await gateway.get_user(args.username))
        elif args.command == "user-posts":
            _print(await gateway.get_user_posts(args.username, limit=args.limit, offset=args.offset))
        elif args.command == "posts":
            _print(await gateway.get_posts(limit=args.limit, offset=args.offset))
        elif args.command == "post":
            _print(await gateway.get_post(args.post_id))
        elif args.command == "create-post":
            _print(await gateway.create_post(args.content))
        elif args.command == "update-post":
            _print(await gateway.update_post(args.post_id, args.content))
        elif args.command == "delete-post":
            _print(await gateway.delete_post(args.post_id))
        elif args.command == "reply":
            _print(await gateway.create_reply(args.post_id, args.content))
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    args = build_parser().parse_args(argv)

    try:
        return asyncio.run(run(args, settings))
    except KwikPostError as e:
        logger.error("Command failed", command=args.command, **e.to_dict())
        return 1


if __name__ == "__main__":
    sys.exit(main())
