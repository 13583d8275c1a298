"""Upload orchestration, validation and form-field state machines."""

from .orchestrator import PreparedUpload, UploadOrchestrator
from .validation import UploadConstraints, matches_accept
from .widgets import FileItem, MultiFileUpload, SingleFileUpload, UploadState

__all__ = [
    "UploadOrchestrator",
    "PreparedUpload",
    "UploadConstraints",
    "matches_accept",
    "UploadState",
    "FileItem",
    "SingleFileUpload",
    "MultiFileUpload",
]
