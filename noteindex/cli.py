"""CLI for running the note indexer in the foreground and checking service health."""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from noteindex.indexing import IndexingPipeline, IndexingSettings
from noteindex.vectorstore import QdrantVectorStoreRepo, VectorStoreSettings, build_qdrant_client
from noteindex.watcher import WatchFailed

logger = logging.getLogger(__name__)


def _run_async(coro):
    return asyncio.run(coro)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _health(settings: VectorStoreSettings | None = None) -> bool:
    s = settings or VectorStoreSettings()
    repo = QdrantVectorStoreRepo(build_qdrant_client(s), s)
    try:
        return await repo.health()
    finally:
        await repo.close()


def cmd_health(args: argparse.Namespace) -> int:
    """Check Qdrant connectivity."""
    ok = _run_async(_health())
    print("OK" if ok else "FAIL")
    return 0 if ok else 1


async def _serve(pipeline: IndexingPipeline, stop_requested: asyncio.Event) -> None:
    """Run until the pipeline ends on its own or a stop is requested.

    Raises WatchFailed if the watch broke.
    """
    finished = asyncio.create_task(pipeline.wait())
    interrupted = asyncio.create_task(stop_requested.wait())
    try:
        await asyncio.wait({finished, interrupted}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        interrupted.cancel()
    if not finished.done():
        logger.info("Stop requested; shutting down")
        await pipeline.stop()
    await finished


async def _watch(args: argparse.Namespace) -> int:
    overrides = {"scan_on_start": True} if args.scan else {}
    settings = IndexingSettings(**overrides)
    try:
        pipeline = IndexingPipeline(args.root, settings=settings)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2
    try:
        await pipeline.start()
    except WatchFailed as e:
        print(f"Cannot watch {args.root}: {e}", file=sys.stderr)
        await pipeline.aclose()
        return 2

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_requested.set)
        except NotImplementedError:
            # Windows: Ctrl+C arrives as KeyboardInterrupt instead
            pass

    try:
        await _serve(pipeline, stop_requested)
    except WatchFailed as e:
        print(f"Watcher failed: {e}", file=sys.stderr)
        return 2
    finally:
        await pipeline.aclose()
    return 1 if pipeline.fatal_error is not None else 0


def cmd_watch(args: argparse.Namespace) -> int:
    """Watch a notes directory and index changes until interrupted."""
    return _run_async(_watch(args))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="noteindex")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    health_p = sub.add_parser("health", help="Check Qdrant connectivity")
    health_p.set_defaults(func=cmd_health)

    watch_p = sub.add_parser("watch", help="Watch a notes directory and keep the index current")
    watch_p.add_argument("root", nargs="?", default=None, help="Notes directory (default: INDEX_NOTES_DIR)")
    watch_p.add_argument("--scan", action="store_true", help="Index existing notes before watching")
    watch_p.set_defaults(func=cmd_watch)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
