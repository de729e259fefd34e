"""HTTP implementation of the ResourceProvisioner port."""

from pathlib import Path
from typing import Any, Dict

import httpx

from ..application.domain import ProjectConfig, ResourceProvisioner
from ..application.exceptions import ProvisioningError

from .base_client import BaseClient
from .decorators import retry_on_network_error

_PROJECT_ENDPOINT = "/prj/{project_id}"
_OPLOG_ENDPOINT = _PROJECT_ENDPOINT + "/oplog/{oplog_id}"


def project_path(project_id: str) -> str:
    return _PROJECT_ENDPOINT.format(project_id=project_id)


def oplog_path(project_id: str, oplog_id: str) -> str:
    return _OPLOG_ENDPOINT.format(project_id=project_id, oplog_id=oplog_id)


class HttpResourceProvisioner(BaseClient, ResourceProvisioner):
    """
    Ensures projects and oplogs exist on the store with check-then-create.

    The check and the creation are separate requests, so two clients
    provisioning the same resource at once can race. A failed creation is
    therefore followed by one more check, and a resource that exists by then
    is accepted as created by the other client.
    """

    @retry_on_network_error
    async def _probe(self, path: str) -> httpx.Response:
        """Executes the raw existence check."""
        return await self._get(path)

    async def _exists(self, path: str) -> bool:
        try:
            response = await self._probe(path)
        except httpx.HTTPError as e:
            self.logger.warning(
                f"Could not check {path}: {type(e).__name__}: {e}"
            )
            return False
        return response.status_code == 200

    async def _ensure(self, kind: str, path: str, payload: Dict[str, Any]):
        if await self._exists(path):
            self.logger.debug(f"The {kind} at {path} already exists.")
            return

        self.logger.info(f"Creating {kind} at {path}...")

        try:
            response = await self._post(path, payload)
        except httpx.HTTPError as e:
            raise ProvisioningError(
                f"Failed to create {kind} at {path}: {type(e).__name__}: {e}"
            ) from e

        if response.status_code == 201:
            self.logger.info(f"Created {kind} at {path}")
            return

        if await self._exists(path):
            self.logger.warning(
                f"Creating {kind} at {path} returned {response.status_code}, "
                f"but it exists now. Assuming it was created concurrently."
            )
            return

        raise ProvisioningError(
            f"Failed to create {kind} at {path} ({response.status_code})"
        )

    async def ensure_project(self, project: ProjectConfig) -> None:
        """
        Guarantee the project exists on the store, creating it if necessary.

        Args:
            project: The local project, whose paths are sent along when the
                project has to be created.

        Raises:
            ProvisioningError: If the project is missing and cannot be created.
        """

        payload = {
            "id": project.project_id,
            "root": str(Path(project.root_dir).absolute()),
            "engine": str(Path(project.engine_dir).absolute()),
            "project": str(Path(project.project_dir).absolute()),
            "projectfile": (
                str(Path(project.project_file).absolute())
                if project.project_file else ""
            ),
        }
        await self._ensure(
            "project", project_path(project.project_id), payload
        )

    async def ensure_oplog(
        self, project_id: str, oplog_id: str, gc_path: Path
    ) -> None:
        """
        Guarantee the oplog exists on the store, creating it if necessary.

        Args:
            project_id: The project owning the oplog.
            oplog_id: The oplog to provision, one per target environment.
            gc_path: The marker file through which the oplog is located.

        Raises:
            ProvisioningError: If the oplog is missing and cannot be created.
        """

        payload = {"gcpath": str(Path(gc_path).absolute())}
        await self._ensure("oplog", oplog_path(project_id, oplog_id), payload)
