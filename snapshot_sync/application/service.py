"""
The application service and session, containing the sync orchestration.

This module defines the consumer-facing facade (SnapshotSyncService) for
starting, polling and cancelling snapshot syncs, and the session
(SyncSession) that drives a set of syncs, one per target environment, to
completion.
"""

import asyncio
import itertools
import logging
from typing import Callable, Dict, Iterable, List

from .domain import *
from .import_request import build_import_params
from .monitor import JobMonitor
from .submitter import JobSubmitter

logger = logging.getLogger(__name__)

QueryCallback = Callable[[], Iterable[SnapshotDescriptor]]


class SnapshotSyncService:
    """Entry point for requesting and tracking snapshot syncs."""

    def __init__(self, submitter: JobSubmitter, monitor: JobMonitor):
        self.submitter = submitter
        self.monitor = monitor
        self._query_callbacks: Dict[int, QueryCallback] = {}
        self._callback_ids = itertools.count(1)

    # --- Snapshot queries ---

    def register_query_callback(self, callback: QueryCallback) -> int:
        """Adds a provider of snapshot descriptors; returns its token."""
        token = next(self._callback_ids)
        self._query_callbacks[token] = callback
        return token

    def unregister_query_callback(self, token: int):
        self._query_callbacks.pop(token, None)

    def can_query_snapshots(self) -> bool:
        return bool(self._query_callbacks)

    def query_snapshots(self) -> List[SnapshotDescriptor]:
        """Collects the descriptors of every registered provider."""
        descriptors = []
        for callback in list(self._query_callbacks.values()):
            descriptors.extend(callback())
        return descriptors

    # --- Sync requests ---

    async def request_sync(self, descriptor: SnapshotDescriptor) -> SyncHandle:
        logger.info(
            f"Requesting sync of snapshot '{descriptor.name}' "
            f"for '{descriptor.target_environment}'..."
        )
        params = build_import_params(descriptor.source)
        return await self.submitter.submit(
            descriptor.target_environment, params
        )

    async def request_sync_from_file(
        self, target_environment: str, directory: str, filename: str
    ) -> SyncHandle:
        source = FileSource(directory=directory, filename=filename)
        return await self.submitter.submit(
            target_environment, build_import_params(source)
        )

    async def request_sync_from_cloud(
        self,
        target_environment: str,
        host: str,
        namespace: str,
        bucket: str,
        key: str,
    ) -> SyncHandle:
        source = CloudSource(
            host=host, namespace=namespace, bucket=bucket, key=key
        )
        return await self.submitter.submit(
            target_environment, build_import_params(source)
        )

    async def request_sync_from_store(
        self,
        target_environment: str,
        host: str,
        project_id: str,
        oplog_id: str,
    ) -> SyncHandle:
        source = StoreOplogSource(
            host=host, project_id=project_id, oplog_id=oplog_id
        )
        return await self.submitter.submit(
            target_environment, build_import_params(source)
        )

    async def query_status(self, handle: SyncHandle) -> bool:
        return await self.monitor.poll(handle)

    async def cancel(self, handle: SyncHandle) -> bool:
        return await self.monitor.cancel(handle)


class SyncSession:
    """Drives a set of syncs, at most one per target environment."""

    def __init__(self, service: SnapshotSyncService, reporter: SyncReporter):
        self.service = service
        self.reporter = reporter
        self.tasks: Dict[str, SyncTask] = {}
        self.finished: List[SyncTask] = []

    def can_sync(self, descriptor: SnapshotDescriptor) -> bool:
        return descriptor.target_environment not in self.tasks

    async def sync(self, descriptor: SnapshotDescriptor) -> bool:
        """
        Starts syncing a snapshot and tracks it.

        Returns:
            True if the sync was started, False if its target environment is
            already being synced or the store did not accept the import.
        """

        if not self.can_sync(descriptor):
            logger.warning(
                f"A sync for '{descriptor.target_environment}' is already "
                f"running. Skipping '{descriptor.name}'."
            )
            return False

        handle = await self.service.request_sync(descriptor)
        if not handle.is_valid:
            return False

        task = SyncTask(descriptor=descriptor, handle=handle)
        self.tasks[task.target_environment] = task
        self.reporter.started(task)
        return True

    def request_cancel(self, target_environment: str) -> bool:
        task = self.tasks.get(target_environment)
        if task is None:
            return False
        task.cancel_requested = True
        return True

    async def _advance(self, task: SyncTask) -> bool:
        """Polls one task; returns True when it should stop being tracked."""

        finished = not await self.service.query_status(task.handle)

        if task.cancel_requested:
            if await self.service.cancel(task.handle):
                task.cancelled = True
                finished = True
        else:
            self.reporter.updated(task)

        return finished

    async def tick(self) -> bool:
        """
        Advances every tracked sync by one poll.

        Returns:
            True while at least one sync is still being tracked.
        """

        tasks = list(self.tasks.values())
        results = await asyncio.gather(*(self._advance(t) for t in tasks))

        for task, finished in zip(tasks, results):
            if finished:
                del self.tasks[task.target_environment]
                self.finished.append(task)
                self.reporter.finished(task)
                logger.info(
                    f"Sync of '{task.descriptor.name}' for "
                    f"'{task.target_environment}' finished: {task.outcome}"
                )

        return bool(self.tasks)

    async def run(self, poll_interval: float = 1.0):
        """Polls all tracked syncs until none is left."""
        while await self.tick():
            await asyncio.sleep(poll_interval)

    async def cancel_all(self):
        """Cancels every tracked sync and stops tracking it."""
        for task in list(self.tasks.values()):
            task.cancelled = await self.service.cancel(task.handle)
            self.finished.append(task)
            self.reporter.finished(task)
        self.tasks.clear()
