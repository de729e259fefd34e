"""Base class for async HTTP clients talking to the store."""

import logging
from typing import Any, Dict, Mapping

import httpx

from ..application.exceptions import CompactBinaryError, ConfigurationError

from . import compact_binary

_JSON_CONTENT_TYPE = "application/json"


class BaseClient:
    """
    A base client that holds the shared async client and the store address.

    Request bodies are encoded as compact binary objects; responses are
    decoded according to their content type.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout: float):
        """
        Initializes the base client.

        Args:
            client: An instance of httpx.AsyncClient.
            base_url: The address of the store, e.g. http://localhost:8558.
            timeout: The timeout of a single request, in seconds.

        Raises:
            ConfigurationError: If the base url is missing or not an HTTP url.
        """

        if not base_url or not base_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Store url for {self.__class__.__name__} is missing or "
                f"invalid: {base_url!r}. Please check your config files."
            )

        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    async def _get(self, path: str) -> httpx.Response:
        return await self.client.get(
            self.base_url + path,
            headers={"Accept": compact_binary.CONTENT_TYPE},
            timeout=self.timeout,
        )

    async def _post(self, path: str, payload: Mapping[str, Any]) -> httpx.Response:
        return await self.client.post(
            self.base_url + path,
            content=compact_binary.encode(payload),
            headers={"Content-Type": compact_binary.CONTENT_TYPE},
            timeout=self.timeout,
        )

    async def _delete(self, path: str) -> httpx.Response:
        return await self.client.delete(
            self.base_url + path, timeout=self.timeout
        )

    def _decode_object(self, response: httpx.Response) -> Dict[str, Any]:
        """
        Decodes a response body into a dict.

        Raises:
            CompactBinaryError: If the body is not a valid object.
        """

        if not response.content:
            return {}

        content_type = response.headers.get("Content-Type", "")
        if content_type.startswith(_JSON_CONTENT_TYPE):
            try:
                data = response.json()
            except ValueError as e:
                raise CompactBinaryError(f"Invalid JSON body: {e}") from e
            if not isinstance(data, dict):
                raise CompactBinaryError("JSON body is not an object")
            return data

        return compact_binary.decode(response.content)
