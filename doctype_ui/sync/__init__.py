from doctype_ui.sync.engine import MergeResult, merge_content, sync

__all__ = ["MergeResult", "merge_content", "sync"]
