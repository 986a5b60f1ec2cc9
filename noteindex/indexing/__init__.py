"""Indexing: coordinator (events to embed/upsert/delete tasks) and the pipeline host."""
from noteindex.indexing.contracts import EmbeddingClientPort, VectorStorePort
from noteindex.indexing.coordinator import FileTask, IndexingCoordinator, TaskState, build_points
from noteindex.indexing.pipeline import IndexingPipeline
from noteindex.indexing.settings import IndexingSettings

__all__ = [
    "EmbeddingClientPort",
    "FileTask",
    "IndexingCoordinator",
    "IndexingPipeline",
    "IndexingSettings",
    "TaskState",
    "VectorStorePort",
    "build_points",
]
