"""Module catalog: seed loading and versioned administration."""

from .catalog import ModuleCatalog
from .loader import DEFAULT_CATALOG_PATH, load_modules, save_modules

__all__ = ["ModuleCatalog", "DEFAULT_CATALOG_PATH", "load_modules", "save_modules"]
