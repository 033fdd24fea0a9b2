import logging
from typing import Callable, Optional

import pandas as pd

from .pipeline import ImportHost
from .schemas import DuplicateItem, DuplicatePolicy

logger = logging.getLogger(__name__)

DUPLICATE_CHOICES = {
    "s": DuplicatePolicy.SKIP,
    "skip": DuplicatePolicy.SKIP,
    "m": DuplicatePolicy.MERGE_INTO_STOCK,
    "merge": DuplicatePolicy.MERGE_INTO_STOCK,
    "c": None,
    "cancel": None,
}


class ConsoleHost(ImportHost):
    """Asks the questions on the terminal."""

    def __init__(self, prompt: Callable[[str], str] = input):
        self.prompt = prompt

    def request_duplicate_policy(self, duplicates: list[DuplicateItem]) -> Optional[DuplicatePolicy]:
        table = pd.DataFrame([d.model_dump() for d in duplicates])
        print("\n--- Items Already In Inventory ---")
        print(table.to_string(index=False))
        while True:
            answer = self.prompt("[s]kip all duplicates, [m]erge into existing stock, or [c]ancel? ").strip().lower()
            if answer in DUPLICATE_CHOICES:
                return DUPLICATE_CHOICES[answer]
            print(f"Unrecognized choice '{answer}'.")

    def request_location_confirmation(self, new_locations: list[str]) -> bool:
        print("\nThe following new inventory locations were found in your CSV:")
        for location in new_locations:
            print(f"  - {location}")
        print("Items with these locations will only be imported if confirmed.")
        answer = self.prompt("Add these locations and continue? [y/N] ").strip().lower()
        return answer in ("y", "yes")


class PresetHost(ImportHost):
    """Answers both questions from fixed settings, for unattended runs."""

    def __init__(self, duplicate_policy: Optional[DuplicatePolicy], accept_new_locations: bool):
        self.duplicate_policy = duplicate_policy
        self.accept_new_locations = accept_new_locations

    def request_duplicate_policy(self, duplicates: list[DuplicateItem]) -> Optional[DuplicatePolicy]:
        if self.duplicate_policy is None:
            logger.warning("Duplicates found and no duplicate policy was given; cancelling.")
        return self.duplicate_policy

    def request_location_confirmation(self, new_locations: list[str]) -> bool:
        if not self.accept_new_locations:
            logger.warning("New locations found and they were not pre-approved; cancelling.")
        return self.accept_new_locations
