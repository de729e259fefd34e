"""HTTP implementation of the JobGateway port."""

from typing import Any, Dict

import httpx
from pydantic import ValidationError

from ..application.domain import JobGateway, JobReport, JobStatus
from ..application.exceptions import (
    CompactBinaryError,
    JobQueryError,
    SubmissionError,
)

from .api_models import JobStatusResponse
from .base_client import BaseClient
from .provisioner import oplog_path

_JOB_ENDPOINT = "/admin/jobs/{job_id}"


class HttpJobGateway(BaseClient, JobGateway):
    """Submits imports to the store and tracks the resulting jobs."""

    def _job_path(self, job_id: str) -> str:
        return _JOB_ENDPOINT.format(job_id=job_id)

    def _map_to_domain(self, dto: JobStatusResponse) -> JobReport:
        """Maps a status DTO to a domain model."""
        return JobReport(
            status=JobStatus(dto.status),
            current_operation=dto.current_op,
            percent_complete=min(max(dto.percent_complete, 0), 100),
            abort_reason=dto.abort_reason,
            messages=tuple(dto.messages),
        )

    async def start_import(
        self, project_id: str, oplog_id: str, params: Dict[str, Any]
    ) -> str:
        """
        Requests an oplog import and returns the id of the started job.

        Args:
            project_id: The project owning the oplog.
            oplog_id: The oplog to import into.
            params: The import parameters.

        Returns:
            The job id, an opaque token taken verbatim from the response.

        Raises:
            SubmissionError: If the store does not accept the import.
        """

        path = oplog_path(project_id, oplog_id) + "/rpc"
        self.logger.info(f"Requesting import into {path}...")

        try:
            response = await self._post(
                path, {"method": "import", "params": params}
            )
        except httpx.HTTPError as e:
            raise SubmissionError(
                f"Failed to import oplog '{oplog_id}': {type(e).__name__}: {e}"
            ) from e

        if response.status_code != 202:
            raise SubmissionError(
                f"Failed to import oplog '{oplog_id}' ({response.status_code})"
            )

        job_id = response.content.decode("utf-8", errors="replace")
        if not job_id:
            raise SubmissionError(
                f"Import of oplog '{oplog_id}' returned no job id"
            )
        return job_id

    async def fetch_status(self, job_id: str) -> JobReport:
        """
        Queries the status of a job.

        Raises:
            JobQueryError: With the raw response body when the store refused
                the query, or a description of what went wrong otherwise.
        """

        try:
            response = await self._get(self._job_path(job_id))
        except httpx.HTTPError as e:
            raise JobQueryError(
                f"Failed to query job '{job_id}': {type(e).__name__}: {e}"
            ) from e

        if response.status_code != 200:
            body = response.content.decode("utf-8", errors="replace")
            raise JobQueryError(
                body or f"Failed to query job '{job_id}' ({response.status_code})"
            )

        try:
            dto = JobStatusResponse.model_validate(self._decode_object(response))
        except (CompactBinaryError, ValidationError) as e:
            raise JobQueryError(
                f"Malformed status of job '{job_id}': {e}"
            ) from e

        return self._map_to_domain(dto)

    async def cancel(self, job_id: str) -> bool:
        """Requests cancellation of a job; returns whether it was accepted."""

        try:
            response = await self._delete(self._job_path(job_id))
        except httpx.HTTPError as e:
            self.logger.warning(
                f"Cancel of job '{job_id}' failed: {type(e).__name__}: {e}"
            )
            return False

        if response.status_code != 200:
            self.logger.warning(
                f"Cancel of job '{job_id}' refused ({response.status_code})"
            )
            return False

        self.logger.info(f"Cancellation of job '{job_id}' accepted")
        return True
