"""Run product and web photo syncs without the HTTP server."""
import argparse
import asyncio
import logging
import sys

from quickorder.config import settings
from quickorder.context import Context
from quickorder.database import close_db, init_db
from quickorder.errors import QuickOrderError
from quickorder.services.sync_service import SyncService

logging.basicConfig(level=settings.log_level)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--context",
        choices=["regular", "virtual", "all"],
        default="all",
        help="Mirror to sync (default: both)",
    )
    parser.add_argument(
        "--only",
        choices=["products", "webphotos"],
        help="Sync a single entity type",
    )
    return parser.parse_args(argv)


async def run(contexts, entity_types) -> int:
    failures = 0
    await init_db()
    try:
        for context in contexts:
            service = SyncService(context)
            for entity_type in entity_types:
                try:
                    if entity_type == "products":
                        report = await service.sync_products()
                    else:
                        report = await service.sync_webphotos()
                except QuickOrderError as e:
                    failures += 1
                    print(f"[{context.value}] {entity_type} sync failed: {e}")
                    continue
                print(f"[{context.value}] {report.message}")
                if report.downloaded or report.download_failed:
                    print(
                        f"[{context.value}] media: {report.downloaded} downloaded, "
                        f"{report.download_failed} failed, {report.cleaned_files} cleaned"
                    )
                for error in report.errors:
                    print(f"[{context.value}]   {error}")
                if report.failed or report.skipped:
                    failures += 1
    finally:
        await close_db()
    return failures


def main(argv=None):
    args = parse_args(argv)
    contexts = list(Context) if args.context == "all" else [Context(args.context)]
    entity_types = [args.only] if args.only else ["products", "webphotos"]
    failures = asyncio.run(run(contexts, entity_types))
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
