from . import settings
from .schemas import ImportSummary, OutcomeTag, RowOutcome

SUCCESS_TAGS = (OutcomeTag.CREATED, OutcomeTag.MERGED)


def aggregate(
    outcomes: list[RowOutcome],
    reference_failures: list[str] | None = None,
    created_categories: list[str] | None = None,
) -> ImportSummary:
    """
    Tallies per-row outcomes into one summary.

    Standalone reference failures (categories that could not be created) count
    as errors and are listed before the row messages. With exactly one error its
    message is surfaced verbatim; with more, a count message is surfaced and the
    full list is left for the diagnostic log.
    """
    reference_failures = reference_failures or []
    error_messages = list(reference_failures)
    success_count = 0
    for outcome in outcomes:
        if outcome.tag in SUCCESS_TAGS:
            success_count += 1
        else:
            error_messages.append(outcome.message)
    error_count = len(error_messages)

    success_message = None
    if success_count > 0:
        success_message = f"Successfully imported {success_count} item(s)."

    if error_count == 1:
        error_message = error_messages[0]
    elif error_count > 1:
        error_message = (
            f"Failed to import {error_count} item(s) due to various issues "
            "(e.g., duplicate SKUs, invalid data). See the import log for details."
        )
    elif success_count == 0:
        error_message = settings.NO_VALID_DATA_MESSAGE
    else:
        error_message = None

    return ImportSummary(
        success_count=success_count,
        error_count=error_count,
        error_messages=error_messages,
        outcomes=outcomes,
        created_categories=created_categories or [],
        success_message=success_message,
        error_message=error_message,
    )
