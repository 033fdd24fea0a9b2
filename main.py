import argparse
import sys
from pathlib import Path

from stock_import import data_handler, settings, utils
from stock_import.errors import EmptyBatchError, StoreError, UserAbortedError
from stock_import.hosts import ConsoleHost, PresetHost
from stock_import.logger import setup_logger
from stock_import.pipeline import ImportPipeline
from stock_import.schemas import DuplicatePolicy
from stock_import.stores.rest import (
    RestAuditLog,
    RestCategoryStore,
    RestInventoryStore,
    RestLocationSet,
    SupabaseRestClient,
)

logger = setup_logger("stock_import")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import inventory rows from a CSV file.")
    parser.add_argument(
        "file",
        nargs="?",
        type=Path,
        help=f"CSV to import (default: newest '{settings.IMPORT_FILENAME_PREFIX}*.csv' in the input folder)",
    )
    parser.add_argument(
        "--on-duplicate",
        choices=["ask", "skip", "merge", "cancel"],
        default="ask",
        help="What to do with rows whose SKU already exists.",
    )
    parser.add_argument(
        "--accept-new-locations",
        action="store_true",
        help="Add unknown locations without asking (only with --on-duplicate other than 'ask').",
    )
    return parser.parse_args(argv)


def build_host(args: argparse.Namespace):
    if args.on_duplicate == "ask":
        return ConsoleHost()
    policy = None if args.on_duplicate == "cancel" else DuplicatePolicy(args.on_duplicate)
    return PresetHost(policy, args.accept_new_locations)


def run_process(argv=None) -> int:
    """Main orchestration function: load the CSV, run the import, save the report."""
    args = parse_args(argv)

    path = args.file or utils.find_latest_file(settings.INPUT_DIR, settings.IMPORT_FILENAME_PREFIX)
    if path is None:
        logger.error(f"❌ No file given and none found in {settings.INPUT_DIR}.")
        return 1
    logger.info(f"  > Importing: {path}")

    rows = utils.load_rows(path)
    if rows is None:
        logger.error("❌ Failed to read file content.")
        return 1

    try:
        client = SupabaseRestClient.from_settings()
    except StoreError as e:
        logger.error(f"❌ {e}")
        return 1

    pipeline = ImportPipeline(
        category_store=RestCategoryStore(client),
        location_set=RestLocationSet(client),
        inventory_store=RestInventoryStore(client),
        audit_log=RestAuditLog(client),
        host=build_host(args),
        diagnostic_log=data_handler.DiagnosticReporter(settings.WEBHOOK_URL),
    )

    try:
        summary = pipeline.run_import(rows)
    except EmptyBatchError as e:
        logger.error(f"❌ {e}")
        return 1
    except UserAbortedError as e:
        logger.error(f"❌ {e}")
        if e.caveat:
            logger.warning(f"⚠️ {e.caveat}")
        return 2
    except StoreError as e:
        # Loading the starting inventory, categories or locations failed; no item was written.
        logger.error(f"❌ Could not load existing inventory data: {e}")
        return 1

    data_handler.save_outputs(summary)
    return 0 if summary.error_count == 0 else 3


if __name__ == "__main__":
    sys.exit(run_process())
