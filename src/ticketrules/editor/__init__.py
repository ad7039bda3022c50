"""Admin writes against the rule store."""

from ticketrules.editor.batch import BatchRuleEditor, ReplaceResult

__all__ = ["BatchRuleEditor", "ReplaceResult"]
