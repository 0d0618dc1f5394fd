"""Command line import of a CSV bookmark file for one user."""

import argparse
import asyncio
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .config import settings
from .db.repository import ReadLaterDatabase
from .logging_config import setup_logging
from .models.import_models import ImportContext
from .rabbitmq_utils import SaveRequestPublisher, close_rabbitmq_connection, get_channel
from .services.imports.csv_importer import import_csv
from .services.imports.handlers import make_save_url_handler
from .services.save.context import SaveContext

logger = setup_logging("readlater")


async def import_file(user_id: str, path: str, db_path: Optional[str] = None) -> ImportContext:
    """Import ``path`` for ``user_id`` and return the finished context."""
    db = await ReadLaterDatabase(db_path or settings.readlater_db_path).ainit()
    try:
        user = await db.get_user(user_id)
        if user is None:
            raise SystemExit(f"Unknown user: {user_id}")

        channel = await get_channel(settings.save_queue)
        try:
            save_ctx = SaveContext(
                db=db,
                publisher=SaveRequestPublisher(channel, settings.save_queue),
                uid=user.id,
                home_page_url=settings.home_page_url,
            )
            ctx = ImportContext(
                url_handler=make_save_url_handler(save_ctx, user),
                user_id=user.id,
                source="csv-importer",
            )
            with open(path, "rb") as f:
                await import_csv(ctx, f)
            return ctx
        finally:
            await channel.close()
            await close_rabbitmq_connection()
    finally:
        await db.close()


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Import a CSV bookmark file")
    parser.add_argument("file", help="CSV file with url[,state[,labels]] rows")
    parser.add_argument("--user-id", required=True, help="Owner of the imported bookmarks")
    parser.add_argument("--db", default=None, help="Database path (defaults to READLATER_DB_PATH)")
    args = parser.parse_args(argv)

    ctx = asyncio.run(import_file(args.user_id, args.file, args.db))
    print(f"Imported: {ctx.count_imported}")
    print(f"Failed: {ctx.count_failed}")
    return 0 if ctx.count_failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
