"""CLI entry point for resumable resource imports.

Each invocation runs one pass and records progress in the same database,
so repeated invocations with the same --id continue where the last stopped.

Usage:
    python -m scripts.import_resource --db-url sqlite:///data.db --file data.csv \
        [--id ID] [--media-type text/csv] [--time-limit 30] [--batch-size 500] [--drop]
"""

import argparse
import logging
import os
import sys

from datastore import (
    CsvRowSourceFactory,
    DatabaseStateStore,
    DatabaseStorage,
    ImportConfig,
    ImportTask,
    Resource,
    Status,
    sanitize_name,
)
from datastore.db import create_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def default_table(resource_id: str) -> str:
    return f"datastore_{sanitize_name(resource_id)}"[:63]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import a delimited file into the datastore")
    parser.add_argument(
        "--db-url",
        default=os.environ.get("DATASTORE_DB_URL"),
        help="Database URL (sqlite:/// or postgresql://); defaults to $DATASTORE_DB_URL",
    )
    parser.add_argument("--file", required=True, help="Path or http(s) URL of the file")
    parser.add_argument("--id", help="Resource identifier (defaults to the file name)")
    parser.add_argument("--media-type", default="text/csv", help="Declared media type")
    parser.add_argument("--table", help="Table to import into (defaults to datastore_<id>)")
    parser.add_argument("--time-limit", type=float, help="Seconds per pass (default: no limit)")
    parser.add_argument("--batch-size", type=int, default=500, help="Rows per transaction")
    parser.add_argument("--drop", action="store_true", help="Drop imported data and reset")
    args = parser.parse_args(argv)

    if not args.db_url:
        logger.error("No database URL. Pass --db-url or set DATASTORE_DB_URL.")
        return 1

    resource_id = args.id or os.path.basename(args.file.rstrip("/")) or args.file
    resource = Resource(resource_id, args.file, args.media_type)

    service = create_service(args.db_url)
    service.connect()
    try:
        config = ImportConfig(
            resource=resource,
            storage=DatabaseStorage(service, args.table or default_table(resource_id)),
            row_source_factory=CsvRowSourceFactory(),
            time_limit=args.time_limit,
            batch_size=args.batch_size,
        )
        task = ImportTask.get(resource_id, DatabaseStateStore(service), config)

        if args.drop:
            task.drop()
            logger.info("Dropped %s.", resource_id)
            return 0

        result = task.run()
        if result.status is Status.ERROR:
            logger.error("Import of %s failed: %s", resource_id, result.error_message)
            return 1
        if result.status is Status.DONE:
            logger.info("Done. %d rows imported.", task.cursor)
        else:
            logger.info("Stopped after %d rows; run again to continue.", task.cursor)
        return 0
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
