"""
Submission of snapshot imports to the store.

The submitter runs the whole blocking sequence for one sync: provision the
project, write the project store marker, provision the oplog and finally
request the import. Nothing is kept between attempts; a failed submit must
be retried from scratch.
"""

import logging
from pathlib import Path
from typing import Any, Dict

from .domain import (
    JobGateway,
    MarkerWriter,
    ProjectConfig,
    ResourceProvisioner,
    SyncHandle,
)
from .exceptions import ConfigurationError, SnapshotSyncError, SubmissionError

logger = logging.getLogger(__name__)

DEFAULT_MARKER_NAME = "ue.projectstore"


class JobSubmitter:
    """Turns an import request into a running store job."""

    def __init__(
        self,
        project: ProjectConfig,
        provisioner: ResourceProvisioner,
        gateway: JobGateway,
        marker_writer: MarkerWriter,
        marker_name: str = DEFAULT_MARKER_NAME,
    ):
        self.project = project
        self.provisioner = provisioner
        self.gateway = gateway
        self.marker_writer = marker_writer
        self.marker_name = marker_name

    def marker_path(self, target_environment: str) -> Path:
        """Location of the marker file for a target environment."""
        return (
            Path(self.project.project_dir)
            / "Saved"
            / "Cooked"
            / target_environment
            / self.marker_name
        ).absolute()

    async def _start_job(
        self, target_environment: str, params: Dict[str, Any]
    ) -> str:
        project_id = self.project.project_id
        oplog_id = target_environment

        if not project_id:
            raise ConfigurationError("No store project id is configured")
        if not target_environment:
            raise SubmissionError("No target environment given for import")

        await self.provisioner.ensure_project(self.project)

        # The oplog is created with a reference to this file, so it must be
        # on disk first.
        marker_path = self.marker_path(target_environment)
        await self.marker_writer.write(
            marker_path,
            {"zenserver": {"projectid": project_id, "oplogid": oplog_id}},
        )

        await self.provisioner.ensure_oplog(project_id, oplog_id, marker_path)

        return await self.gateway.start_import(project_id, oplog_id, params)

    async def submit(
        self, target_environment: str, params: Dict[str, Any]
    ) -> SyncHandle:
        """
        Provisions the store resources and submits an import.

        Args:
            target_environment: The environment (oplog) to import into.
            params: The import parameters, see build_import_params.

        Returns:
            A handle tracking the new job, or an invalid handle if any step
            failed.
        """

        try:
            job_id = await self._start_job(target_environment, params)
        except SnapshotSyncError as e:
            logger.error(
                f"Snapshot sync for '{target_environment}' was not started: {e}"
            )
            return SyncHandle()

        logger.info(f"Started import job '{job_id}' for '{target_environment}'")
        return SyncHandle(job_id=job_id)
