"""DuckDB rule store."""

from ticketrules.storage.store import RuleStore

__all__ = ["RuleStore"]
