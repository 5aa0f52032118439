"""Exception hierarchy for gridsight.

Catalog-wide failures propagate to the caller; per-icon and per-seed failures
are handled inside the processing pipeline and logged.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class GridsightError(Exception):
    """Base exception for all gridsight errors."""


class CatalogError(GridsightError):
    """Base class for icon catalog problems."""


class CatalogDirectoryMissingError(CatalogError):
    """A template directory could not be listed after all retries."""

    def __init__(self, directory: Union[str, Path], attempts: int):
        self.directory = Path(directory)
        self.attempts = attempts
        super().__init__(f"Icon directory '{self.directory}' unavailable after {attempts} attempt(s)")


class InvalidTemplateError(CatalogError):
    """A template image cannot be used (undecodable or not a whole number of slots)."""

    def __init__(self, icon_key: str, reason: str):
        self.icon_key = icon_key
        self.reason = reason
        super().__init__(f"Invalid icon template '{icon_key}': {reason}")


class NoUsableTemplatesError(GridsightError):
    """No template exists for the slot size being scanned."""

    def __init__(self, slot_size, detail: Optional[str] = None):
        self.slot_size = slot_size
        msg = f"No icon templates for slot size {tuple(slot_size)}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class InconsistentTraceError(GridsightError):
    """Edge walk closed the loop but the opposite sides disagree in length."""

    def __init__(self, seed, width_pair, height_pair):
        self.seed = seed
        self.width_pair = width_pair
        self.height_pair = height_pair
        super().__init__(
            f"Inconsistent trace from seed {tuple(seed)}: widths {width_pair}, heights {height_pair}"
        )
