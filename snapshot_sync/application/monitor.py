"""Status tracking and cancellation of running sync jobs."""

import logging
from typing import Sequence

from .domain import JobGateway, JobStatus, MessagePolicy, SyncHandle
from .exceptions import JobQueryError

logger = logging.getLogger(__name__)

_ABORTED_FALLBACK = "Aborted"


class JobMonitor:
    """
    Reconciles the store-side status of a job into its SyncHandle.

    Only active handles are touched. An unstarted handle has nothing to poll
    and a terminal handle (complete or failed) is never updated again.
    """

    def __init__(
        self,
        gateway: JobGateway,
        message_policy: MessagePolicy = MessagePolicy.APPEND,
    ):
        self.gateway = gateway
        self.message_policy = MessagePolicy(message_policy)

    def _merge_messages(self, handle: SyncHandle, messages: Sequence[str]):
        if self.message_policy is MessagePolicy.APPEND:
            handle.messages.extend(messages)
        elif self.message_policy is MessagePolicy.NEW:
            handle.messages.extend(messages[len(handle.messages):])

    async def poll(self, handle: SyncHandle) -> bool:
        """
        Queries the job once and updates the handle.

        A failed status query is terminal for the handle: the error text is
        recorded and the job is not polled again.

        Args:
            handle: The handle to update.

        Returns:
            True if the job is still running and should be polled again.
        """

        if not handle.is_active:
            return False

        try:
            report = await self.gateway.fetch_status(handle.job_id)
        except JobQueryError as e:
            handle.error_message = (
                str(e) or f"Failed to query job '{handle.job_id}'"
            )
            logger.error(
                f"Failed to query job '{handle.job_id}': {handle.error_message}"
            )
            return False

        handle.current_operation = report.current_operation
        handle.progress = report.percent_complete / 100
        self._merge_messages(handle, report.messages)

        if report.status is JobStatus.COMPLETE:
            handle.complete = True
            logger.info(f"Job '{handle.job_id}' completed")
            return False

        if report.status is JobStatus.ABORTED:
            handle.error_message = report.abort_reason or _ABORTED_FALLBACK
            logger.warning(
                f"Job '{handle.job_id}' aborted: {handle.error_message}"
            )
            return False

        return True

    async def cancel(self, handle: SyncHandle) -> bool:
        """
        Asks the store to cancel the job.

        The handle itself is left untouched; it only becomes terminal once a
        later poll observes the aborted job.

        Returns:
            True if the store accepted the cancellation.
        """

        if not handle.is_active:
            return False

        accepted = await self.gateway.cancel(handle.job_id)
        if not accepted:
            logger.error(f"Failed to cancel job '{handle.job_id}'")
        return accepted
