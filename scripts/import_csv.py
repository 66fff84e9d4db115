"""CLI entry point for staged CSV imports.

Usage:
    python -m scripts.import_csv --config config.json [--db-url sqlite:///data.db] [--batch-size 5000]
"""

import argparse
import dataclasses
import logging
import sys

from csvstage import create_service
from csvstage.config import load_config
from csvstage.errors import CsvStageError
from csvstage.runner import run_import

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a folder of CSV files via a staging table")
    parser.add_argument("--config", required=True, help="Path to the JSON configuration file")
    parser.add_argument(
        "--db-url", help="Database URL (sqlite:/// or postgresql://); overrides the config"
    )
    parser.add_argument("--batch-size", type=int, help="Rows per batch; overrides the config")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except CsvStageError as e:
        logger.error("%s", e)
        sys.exit(1)

    process = config.process
    if args.batch_size is not None:
        if args.batch_size < 1:
            parser.error("--batch-size must be positive")
        process = dataclasses.replace(process, batch_size=args.batch_size)

    service = create_service(args.db_url or config.database.url, config.database.pool_size)
    service.connect()
    try:
        summary = run_import(service, process)
        logger.info(
            "Done. %d files imported, %d failed, %d rows loaded.",
            summary.files_processed,
            summary.files_failed,
            summary.rows_loaded,
        )
    except CsvStageError as e:
        logger.error("Import aborted: %s", e)
        sys.exit(1)
    finally:
        service.close()


if __name__ == "__main__":
    main()
