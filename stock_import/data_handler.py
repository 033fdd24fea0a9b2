import json
import logging
from pathlib import Path
from typing import Optional

import pandas as pd
import requests

from . import settings
from . import utils
from .schemas import ImportSummary
from .stores.base import DiagnosticLog

logger = logging.getLogger(__name__)


def save_outputs(summary: ImportSummary, output_dir: Optional[Path] = None) -> Path:
    """Saves the per-row outcome report to CSV and conditionally to JSON, with dated filenames."""
    output_dir = output_dir or settings.OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename()

    csv_path = output_dir / f"{settings.REPORT_FILENAME_BASE}_{date_suffix}.csv"
    json_path = output_dir / f"{settings.REPORT_FILENAME_BASE}_{date_suffix}.json"

    columns = ["row_number", "sku", "tag", "message", "failure_kind"]
    df = pd.DataFrame(
        [outcome.model_dump(mode="json") for outcome in summary.outcomes],
        columns=columns,
    )
    df.to_csv(csv_path, index=False)
    logger.info(f"✅ Import report saved to: {csv_path}")

    if settings.SAVE_JSON_OUTPUT:
        with open(json_path, "w") as f:
            json.dump(summary.model_dump(mode="json"), f, indent=2, default=str)
        logger.info(f"✅ JSON output saved to: {json_path}")
    else:
        logger.info("INFO: Skipping JSON file save as per configuration.")

    return csv_path


class DiagnosticReporter(DiagnosticLog):
    """
    Writes the full error list of an import to the log and, when a webhook is
    configured, posts it there. Never raises.
    """

    def __init__(self, webhook_url: Optional[str] = None, timeout: int = settings.REQUEST_TIMEOUT):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def record(self, messages: list[str]) -> None:
        logger.error("CSV Import Summary - Errors:")
        for message in messages:
            logger.error(f"  - {message}")

        if not self.webhook_url:
            return

        payload = {"errorCount": len(messages), "errors": messages}
        try:
            response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            logger.info("✅ Import errors posted to webhook.")
        except requests.exceptions.RequestException as e:
            logger.warning(f"❌ Error posting import errors to webhook: {e}")
