"""Sync workflows for poeditor-sync - language reconciliation, upload and download."""

from .reconciler import (
    TargetSelection,
    compute_missing,
    detect_source_language,
    select_targets,
)
from .report import SyncOutcome, SyncReport, SyncStatus
from .workflow import SyncWorkflow

__all__ = [
    "SyncWorkflow",
    "SyncReport",
    "SyncOutcome",
    "SyncStatus",
    "TargetSelection",
    "compute_missing",
    "detect_source_language",
    "select_targets",
]
