import math
import re
from typing import Any, Iterable, Mapping

from . import settings
from .schemas import CandidateRow, Location

_INT_PREFIX = re.compile(r"^[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

INT_COLUMNS = [
    "pickingBinQuantity",
    "overstockQuantity",
    "reorderLevel",
    "pickingReorderLevel",
    "committedStock",
    "incomingStock",
    "autoReorderQuantity",
]
FLOAT_COLUMNS = ["unitCost", "retailPrice"]
TEXT_COLUMNS = ["name", "sku", "category", "location", "pickingBinLocation"]
OPTIONAL_TEXT_COLUMNS = ["description", "imageUrl", "vendorId", "barcodeUrl"]

# CSV column -> CandidateRow field name
COLUMN_TO_FIELD = {
    (info.alias or name): name
    for name, info in CandidateRow.model_fields.items()
    if (info.alias or name) in settings.RECOGNIZED_COLUMNS
}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def _as_text(value: Any) -> str:
    """String coercion the way a spreadsheet cell reads: 1001.0 -> '1001'."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _parse_int(value: Any) -> int | None:
    """Best-effort integer parse: leading integer prefix, None when nothing parses."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _INT_PREFIX.match(str(value).strip())
    return int(match.group(0)) if match else None


def _parse_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    match = _FLOAT_PREFIX.match(str(value).strip())
    return float(match.group(0)) if match else None


def normalize_row(raw: Mapping[str, Any], row_number: int = 0) -> CandidateRow:
    """
    Coerces one raw spreadsheet row into a CandidateRow.

    Lenient by contract: absent or non-numeric numbers become 0 and are
    remembered in ``absent_fields`` / ``unparsed_fields`` so the validator can
    reject them later. Never raises.
    """
    cells = {str(key).strip(): value for key, value in raw.items()}
    values: dict[str, Any] = {}
    absent: set[str] = set()
    unparsed: set[str] = set()

    for column in TEXT_COLUMNS:
        values[COLUMN_TO_FIELD[column]] = _as_text(cells.get(column))

    for column in OPTIONAL_TEXT_COLUMNS:
        values[COLUMN_TO_FIELD[column]] = _as_text(cells.get(column)) or None

    for column in INT_COLUMNS + FLOAT_COLUMNS:
        cell = cells.get(column)
        if _is_blank(cell):
            absent.add(column)
            parsed = None
        else:
            parse = _parse_int if column in INT_COLUMNS else _parse_float
            parsed = parse(cell)
            if parsed is None:
                unparsed.add(column)
        values[COLUMN_TO_FIELD[column]] = parsed if parsed is not None else 0

    values["auto_reorder_enabled"] = (
        _as_text(cells.get("autoReorderEnabled")).lower() == "true"
    )

    return CandidateRow(
        row_number=row_number,
        absent_fields=frozenset(absent),
        unparsed_fields=frozenset(unparsed),
        **values,
    )


def is_blank_row(raw: Mapping[str, Any]) -> bool:
    cells = {str(key).strip(): value for key, value in raw.items()}
    return all(_is_blank(cells.get(column)) for column in settings.RECOGNIZED_COLUMNS)


def normalize_rows(raw_rows: Iterable[Mapping[str, Any]]) -> list[CandidateRow]:
    """Normalizes a batch, numbering rows from 1 and dropping all-blank lines."""
    rows = []
    for index, raw in enumerate(raw_rows, start=1):
        if is_blank_row(raw):
            continue
        rows.append(normalize_row(raw, row_number=index))
    return rows


def parse_location_string(location: str) -> Location:
    """
    Splits a location code such as ``A-01-01-1-A`` into area/row/bay/level/pos.
    Missing parts are filled with ``N/A``; free-text names land in ``area``.
    """
    parts = [part.strip() for part in location.split("-")]
    keys = ["area", "row", "bay", "level", "pos"]
    structured = {key: (parts[i] if i < len(parts) and parts[i] else "N/A") for i, key in enumerate(keys)}
    if len(parts) > len(keys):
        structured["pos"] = "-".join(parts[len(keys) - 1:])
    return Location(
        full_location_string=location,
        display_name=location,
        color=settings.DEFAULT_LOCATION_COLOR,
        **structured,
    )
