"""Local filesystem implementation of the MarkerWriter port."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..application.domain import MarkerWriter
from ..application.exceptions import MarkerWriteError


class LocalMarkerWriter(MarkerWriter):
    """Writes the project store marker as a small JSON file."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def _blocking_write(self, path: Path, content: Dict[str, Any]):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(content, f, indent="\t")

    async def write(self, path: Path, content: Dict[str, Any]):
        """
        Writes the marker file, creating its directory if needed.

        Args:
            path: Where the marker file goes.
            content: The JSON object to store.

        Raises:
            MarkerWriteError: If the file cannot be written.
        """

        try:
            await asyncio.to_thread(self._blocking_write, Path(path), content)
        except OSError as e:
            raise MarkerWriteError(
                f"Failed to create project store file '{path}': {e}"
            ) from e

        self.logger.debug(f"Wrote project store file {path}")
