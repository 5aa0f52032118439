"""gridsight: inventory grid detection and item icon identification.

Public entry points:
- Engine: owns the icon catalog and the shared matching pool
- InventoryView: grid tracing and icon lookup on a single screenshot
- Catalog: hot-reloadable icon template sets
- Config / ConfigManager: explicit configuration
"""
from .core.config import ConfigManager
from .core.errors import (
    GridsightError,
    CatalogError,
    CatalogDirectoryMissingError,
    InvalidTemplateError,
    NoUsableTemplatesError,
    InconsistentTraceError,
)
from .core.settings import Config
from .data.catalog import Catalog, IconKind, IconTemplate
from .data.items import Item, ItemDatabase, ItemExtraInfo
from .processing.icon import IconInstance
from .processing.inventory import InventoryView
from .engine import Engine

__version__ = "0.3.0"

__all__ = [
    "ConfigManager",
    "Config",
    "GridsightError",
    "CatalogError",
    "CatalogDirectoryMissingError",
    "InvalidTemplateError",
    "NoUsableTemplatesError",
    "InconsistentTraceError",
    "Catalog",
    "IconKind",
    "IconTemplate",
    "Item",
    "ItemDatabase",
    "ItemExtraInfo",
    "IconInstance",
    "InventoryView",
    "Engine",
]
