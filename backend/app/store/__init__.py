"""Entity store: DuckDB relations for the portal."""

from .database import EntityStore, StoreClosedError, rows_as_dicts

__all__ = ["EntityStore", "StoreClosedError", "rows_as_dicts"]
