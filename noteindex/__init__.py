"""Background semantic indexing for a notes directory (watchdog + Ollama + Qdrant)."""
from noteindex.errors import NoteIndexError, ReadFailed
from noteindex.indexing import IndexingCoordinator, IndexingPipeline, IndexingSettings
from noteindex.models import ChangeKind, FileChangeEvent

__all__ = [
    "ChangeKind",
    "FileChangeEvent",
    "IndexingCoordinator",
    "IndexingPipeline",
    "IndexingSettings",
    "NoteIndexError",
    "ReadFailed",
]

__version__ = "0.1.0"
