"""Builds the parameter object of a store "import" call."""

from typing import Any, Dict

from .domain import CloudSource, FileSource, SnapshotSource, StoreOplogSource


def build_import_params(source: SnapshotSource) -> Dict[str, Any]:
    """
    Maps a snapshot source to the parameters the store expects for an import.

    Args:
        source: Where the snapshot data comes from.

    Returns:
        A nested object with exactly one key naming the source kind.

    Raises:
        TypeError: If source is not one of the known snapshot sources.
    """

    if isinstance(source, FileSource):
        return {
            "file": {
                "path": source.directory,
                "name": source.filename,
            }
        }

    if isinstance(source, CloudSource):
        return {
            "cloud": {
                "url": source.host,
                "namespace": source.namespace,
                "bucket": source.bucket,
                "key": source.key,
            }
        }

    if isinstance(source, StoreOplogSource):
        return {
            "zen": {
                "url": source.host,
                "project": source.project_id,
                "oplog": source.oplog_id,
            }
        }

    raise TypeError(f"Unsupported snapshot source: {type(source).__name__}")
