import logging
from datetime import datetime
from pathlib import Path
import pandas as pd

logger = logging.getLogger(__name__)


def get_date_suffix_for_filename() -> str:
    """Returns the current date as a YYYY-MM-DD string for filenames."""
    return datetime.now().strftime("%Y-%m-%d")


def find_latest_file(directory: Path, prefix: str) -> Path | None:
    """Newest CSV in ``directory`` whose name starts with ``prefix``."""
    if not directory.exists():
        return None
    candidates = [p for p in directory.glob(f"{prefix}*.csv") if p.is_file()]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def load_csv(file_path: Path) -> pd.DataFrame | None:
    """
    A CSV loader with a multi-stage encoding fallback.
    Every cell is read as text so SKUs like '001' survive; empty cells stay ''.
    1. UTF-8 with BOM support ('utf-8-sig').
    2. Latin-1, which can read any byte.
    """
    options = {"dtype": str, "keep_default_na": False}
    try:
        return pd.read_csv(file_path, encoding="utf-8-sig", **options)

    except UnicodeDecodeError:
        logger.info(f"INFO: UTF-8 decoding failed for {file_path.name}. Retrying with 'latin-1'.")
        try:
            return pd.read_csv(file_path, encoding="latin-1", **options)
        except Exception as e_latin1:
            logger.error(f"ERROR: Could not read {file_path.name} even with latin-1. Reason: {e_latin1}")
            return None

    except FileNotFoundError:
        logger.error(f"ERROR: File not found at {file_path}.")
        return None

    except pd.errors.EmptyDataError:
        # A file with no header at all: treat as an empty batch.
        return pd.DataFrame()

    except Exception as e_general:
        logger.error(f"ERROR: An unexpected error occurred while reading {file_path.name}. Reason: {e_general}")
        return None


def load_rows(file_path: Path) -> list[dict] | None:
    """Rows of a CSV file as plain dicts, or None when the file cannot be read."""
    df = load_csv(file_path)
    if df is None:
        return None
    return df.to_dict("records")
