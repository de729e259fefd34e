"""JSON implementation of the DescriptorReader port."""

import json
import logging
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from ..application.domain import *
from ..application.exceptions import DescriptorError

from .api_models import (
    CloudSnapshotEntry,
    DescriptorDocument,
    FileSnapshotEntry,
    ZenSnapshotEntry,
    snapshot_entry_adapter,
)


class JsonDescriptorReader(DescriptorReader):
    """
    Reads snapshot descriptor documents of the form
    {"snapshots": [{"name": ..., "targetplatform": ..., "type": ...}, ...]}.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def _map_to_domain(self, entry) -> SnapshotDescriptor:
        """Maps a single validated entry to a domain model."""

        if isinstance(entry, FileSnapshotEntry):
            source = FileSource(
                directory=entry.directory, filename=entry.filename
            )
        elif isinstance(entry, CloudSnapshotEntry):
            source = CloudSource(
                host=entry.host,
                namespace=entry.namespace,
                bucket=entry.bucket,
                key=entry.key,
            )
        elif isinstance(entry, ZenSnapshotEntry):
            source = StoreOplogSource(
                host=entry.host,
                project_id=entry.projectid,
                oplog_id=entry.oplogid,
            )
        else:
            raise TypeError(f"Unsupported entry: {type(entry).__name__}")

        return SnapshotDescriptor(
            name=entry.name,
            target_environment=entry.targetplatform,
            source=source,
        )

    def read(self, data: Union[bytes, str]) -> List[SnapshotDescriptor]:
        """
        Parses a descriptor document.

        Entries that are not objects or fail validation are skipped with a
        warning.

        Args:
            data: The raw document.

        Returns:
            The descriptors of all valid entries, in document order.

        Raises:
            DescriptorError: If the document is not valid JSON or has no
                snapshots list.
        """

        try:
            raw = json.loads(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise DescriptorError(f"Invalid descriptor document: {e}") from e

        try:
            document = DescriptorDocument.model_validate(raw)
        except ValidationError as e:
            raise DescriptorError(f"Invalid descriptor document: {e}") from e

        descriptors = []
        for index, item in enumerate(document.snapshots):
            if not isinstance(item, dict):
                self.logger.warning(f"Skipping snapshot #{index}: not an object")
                continue
            try:
                entry = snapshot_entry_adapter.validate_python(item)
            except ValidationError as e:
                self.logger.warning(
                    f"Skipping snapshot #{index} "
                    f"({item.get('name', 'unnamed')}): {e.error_count()} errors"
                )
                continue
            descriptors.append(self._map_to_domain(entry))

        return descriptors

    def read_file(self, path: Union[str, Path]) -> List[SnapshotDescriptor]:
        """
        Reads and parses a descriptor file.

        Raises:
            DescriptorError: If the file cannot be read or parsed.
        """

        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise DescriptorError(
                f"Failed to read snapshot descriptor file '{path}': {e}"
            ) from e

        descriptors = self.read(data)
        self.logger.info(f"Read {len(descriptors)} snapshots from {path}")
        return descriptors
