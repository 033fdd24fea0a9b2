from . import settings
from .parsers import COLUMN_TO_FIELD, INT_COLUMNS
from .schemas import CandidateRow, ReferenceSet, ValidationOutcome


def invalid_fields(row: CandidateRow) -> list[str]:
    """Returns the CSV columns of ``row`` that fail the required/non-negative checks."""
    failing = []
    for column in settings.RECOGNIZED_COLUMNS:
        value = getattr(row, COLUMN_TO_FIELD[column])
        if column in settings.REQUIRED_TEXT_COLUMNS:
            bad = not value
        elif column in settings.CHECKED_NUMERIC_COLUMNS:
            bad = (
                column in row.unparsed_fields
                or (column in settings.REQUIRED_NUMERIC_COLUMNS and column in row.absent_fields)
                or value < 0
            )
        elif column in INT_COLUMNS:
            bad = value < 0
        else:
            bad = False
        if bad:
            failing.append(column)
    return failing


def _reference_problems(row: CandidateRow, references: ReferenceSet) -> list[str]:
    problems = []
    if not references.has_category(row.category):
        problems.append(f"Category '{row.category}' could not be found or created")
    if not references.has_location(row.location):
        problems.append(
            f"Main Storage Location '{row.location}' does not exist and was not confirmed to be added"
        )
    if not references.has_location(row.picking_bin_location):
        problems.append(
            f"Picking Bin Location '{row.picking_bin_location}' does not exist and was not confirmed to be added"
        )
    return problems


def validate_row(row: CandidateRow, references: ReferenceSet | None = None) -> ValidationOutcome:
    """
    Checks one row. Field problems are reported together in a single message;
    reference checks only run once the fields are sound and references are known.
    """
    failing = invalid_fields(row)
    if failing:
        return ValidationOutcome(
            valid=False,
            reason=(
                f"Row with SKU '{row.sku or 'N/A'}': Missing or invalid required fields "
                f"({', '.join(failing)})."
            ),
        )

    if references is not None:
        problems = _reference_problems(row, references)
        if problems:
            return ValidationOutcome(
                valid=False,
                reason=f"Row with SKU '{row.sku}': {'; '.join(problems)}. Item skipped.",
            )

    return ValidationOutcome(valid=True)
