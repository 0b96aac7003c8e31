"""CLI entry point for livefeed."""

import argparse
import asyncio
import sys

from livefeed.client import ConnectionStatus, FeedClient, MergeResult, SyncSession
from livefeed.config import settings
from livefeed.logging_utils import setup_logging


def _print_messages(result: MergeResult) -> None:
    for message in result.added:
        print(f"[{message.created_at}] #{message.id} {message.author}: {message.body}", flush=True)


def _print_status(status: ConnectionStatus) -> None:
    print(f"-- {status.value}", file=sys.stderr, flush=True)


def _stats_printer():
    last: dict[str, int] = {}

    def _print_stats(stats: dict[str, int]) -> None:
        if stats != last:
            last.update(stats)
            print(f"-- total={stats['total']} maxId={stats['max_id']}", file=sys.stderr, flush=True)

    return _print_stats


async def _watch(args: argparse.Namespace) -> int:
    async with FeedClient(args.url, timeout=settings.REQUEST_TIMEOUT) as client:
        session = SyncSession(
            client,
            capacity=settings.VIEW_CAPACITY,
            fetch_limit=settings.FETCH_LIMIT,
            poll_interval_active=settings.POLL_INTERVAL_ACTIVE,
            poll_interval_background=settings.POLL_INTERVAL_BACKGROUND,
            stats_interval=settings.STATS_INTERVAL,
            on_messages=_print_messages,
            on_status=_print_status,
            on_stats=_stats_printer(),
        )
        if args.background:
            session.set_focus(False)
        session.start()
        try:
            await asyncio.Event().wait()
        finally:
            await session.stop()
    return 0


async def _send(args: argparse.Namespace) -> int:
    async with FeedClient(args.url, timeout=settings.REQUEST_TIMEOUT) as client:
        response = await client.send(args.author, args.body)
    if not response.ok:
        print(f"Send failed: {response.error}", file=sys.stderr)
        return 1
    print(response.data["id"])
    return 0


async def _stats(args: argparse.Namespace) -> int:
    async with FeedClient(args.url, timeout=settings.REQUEST_TIMEOUT) as client:
        response = await client.stats()
    if not response.ok:
        print(f"Stats failed: {response.error}", file=sys.stderr)
        return 1
    print(f"total={response.data['total']} maxId={response.data['maxId']}")
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("livefeed.main:app", host=args.host, port=args.port, log_config=None)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="livefeed", description="Shared append-only message feed")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the feed service")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    watch = sub.add_parser("watch", help="Poll the feed and print new messages")
    watch.add_argument("--url", default=settings.FEED_URL)
    watch.add_argument("--background", action="store_true", help="Use the background poll interval")

    send = sub.add_parser("send", help="Append one message")
    send.add_argument("body")
    send.add_argument("--author", default=None)
    send.add_argument("--url", default=settings.FEED_URL)

    stats = sub.add_parser("stats", help="Show total messages and highest id")
    stats.add_argument("--url", default=settings.FEED_URL)

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "serve":
        return _serve(args)
    commands = {"watch": _watch, "send": _send, "stats": _stats}
    try:
        return asyncio.run(commands[args.command](args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
