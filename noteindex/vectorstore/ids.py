"""Deterministic point IDs: "<path>-<n>" keys and their Qdrant UUIDs."""
from uuid import NAMESPACE_URL, uuid5


def point_key(path: str, chunk_index: int) -> str:
    """Readable point id for chunk `chunk_index` of the note at `path`.

    Re-embedding the same file yields the same keys, so upserts overwrite.
    """
    return f"{path}-{chunk_index}"


def qdrant_point_id(key: str) -> str:
    """Qdrant only accepts unsigned ints or UUIDs as point ids; map the key to uuid5."""
    return str(uuid5(NAMESPACE_URL, key))
