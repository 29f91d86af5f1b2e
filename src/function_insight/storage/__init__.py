"""Persistence: SQLite analysis store and content-addressed blob store."""

from .blobs import ARTIFACT_TYPES, CALLGRAPHS, DIFFS, BlobStore
from .database import IntelligenceDB, ensure_store_dir
from .reader import list_history, load_current
from .writer import save_intelligence

__all__ = [
    "ARTIFACT_TYPES",
    "CALLGRAPHS",
    "DIFFS",
    "BlobStore",
    "IntelligenceDB",
    "ensure_store_dir",
    "list_history",
    "load_current",
    "save_intelligence",
]
