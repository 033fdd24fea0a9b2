import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
INPUT_DIR = BASE_DIR / os.getenv("INPUT_DIR", "input")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")

# --- Filename Configuration ---
IMPORT_FILENAME_PREFIX = os.getenv("IMPORT_FILENAME_PREFIX", "inventory_import")
REPORT_FILENAME_BASE = os.getenv("REPORT_FILENAME_BASE", "import_report")
SAVE_JSON_OUTPUT = os.getenv("SAVE_JSON_OUTPUT", "false").lower() == "true"

# --- Webhook ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")

# --- Backend (Supabase REST) ---
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
ORGANIZATION_ID = os.getenv("ORGANIZATION_ID")
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "15"))

# --- Logging ---
LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
LOG_DIR = BASE_DIR / os.getenv("LOG_DIR", "logs")
LOG_FILENAME = os.getenv("LOG_FILENAME", "import.log")

# --- Shared Business Logic ---
MERGE_REASON = "bulk import merge"
DEFAULT_LOCATION_COLOR = "#CCCCCC"
NO_VALID_DATA_MESSAGE = "No valid data found in the CSV to import."

# Header row of the import template. Keep in sync with CandidateRow aliases.
RECOGNIZED_COLUMNS = [
    "name",
    "description",
    "sku",
    "category",
    "pickingBinQuantity",
    "overstockQuantity",
    "reorderLevel",
    "pickingReorderLevel",
    "committedStock",
    "incomingStock",
    "unitCost",
    "retailPrice",
    "location",
    "pickingBinLocation",
    "imageUrl",
    "vendorId",
    "barcodeUrl",
    "autoReorderEnabled",
    "autoReorderQuantity",
]

REQUIRED_TEXT_COLUMNS = ["name", "sku", "category", "location", "pickingBinLocation"]

# Numeric columns that must hold a parseable, non-negative value.
CHECKED_NUMERIC_COLUMNS = [
    "pickingBinQuantity",
    "overstockQuantity",
    "reorderLevel",
    "pickingReorderLevel",
    "unitCost",
    "retailPrice",
]

# Price columns have no sensible zero default and must be present.
REQUIRED_NUMERIC_COLUMNS = ["unitCost", "retailPrice"]
