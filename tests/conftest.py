"""
Shared test fixtures and configuration for pytest.

The store is replaced by FakeStore, an httpx.MockTransport handler that
serves queued responses per route and records every request it receives.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from snapshot_sync.application.domain import ProjectConfig, SyncReporter, SyncTask
from snapshot_sync.application.monitor import JobMonitor
from snapshot_sync.application.service import SnapshotSyncService
from snapshot_sync.application.submitter import JobSubmitter
from snapshot_sync.infrastructure import compact_binary
from snapshot_sync.infrastructure.jobs_client import HttpJobGateway
from snapshot_sync.infrastructure.marker import LocalMarkerWriter
from snapshot_sync.infrastructure.provisioner import HttpResourceProvisioner

BASE_URL = "http://store.test"
PROJECT_ID = "demo"

PROJECT_PATH = f"/prj/{PROJECT_ID}"
RPC_PATH_TEMPLATE = PROJECT_PATH + "/oplog/{target}/rpc"


def oplog_route(target: str) -> str:
    return f"{PROJECT_PATH}/oplog/{target}"


def job_route(job_id: str) -> str:
    return f"/admin/jobs/{job_id}"


# ============================================================================
# Response helpers
# ============================================================================

def cb(status: int, obj: Optional[Dict[str, Any]] = None):
    """A response with a compact binary object body."""
    body = compact_binary.encode(obj) if obj is not None else b""
    return status, body, {"Content-Type": compact_binary.CONTENT_TYPE}


def text(status: int, body: str = ""):
    """A response with a plain text body."""
    return status, body.encode("utf-8"), {"Content-Type": "text/plain"}


def job_status(status: str, op: str = "", percent: int = 0, **extra):
    obj = {"Status": status, "CurrentOp": op, "CurrentOpPercentComplete": percent}
    obj.update(extra)
    return cb(200, obj)


# ============================================================================
# Fake store
# ============================================================================

class FakeStore:
    """An in-memory stand-in for the store's HTTP interface."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Any]] = {}
        self.requests: List[httpx.Request] = []

    def respond(self, method: str, path: str, *replies):
        """Queues replies for a route; the last reply keeps repeating."""
        self.routes[(method, path)] = list(replies)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404)

        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply

        status, body, headers = reply
        return httpx.Response(status, content=body, headers=headers)

    def calls(self) -> List[Tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def payload(self, method: str, path: str) -> Dict[str, Any]:
        """Decodes the body of the last request sent to a route."""
        for request in reversed(self.requests):
            if (request.method, request.url.path) == (method, path):
                return compact_binary.decode(request.content)
        raise AssertionError(f"No {method} request to {path}")

    def serve_existing_resources(self, target: str):
        self.respond("GET", PROJECT_PATH, cb(200, {"id": PROJECT_ID}))
        self.respond("GET", oplog_route(target), cb(200, {"id": target}))

    def accept_import(self, target: str, job_id: str):
        self.respond(
            "POST", RPC_PATH_TEMPLATE.format(target=target), text(202, job_id)
        )


class RecordingReporter(SyncReporter):
    """Collects reporter events as (event, target environment) pairs."""

    def __init__(self):
        self.events: List[Tuple[str, str]] = []

    def started(self, task: SyncTask):
        self.events.append(("started", task.target_environment))

    def updated(self, task: SyncTask):
        self.events.append(("updated", task.target_environment))

    def finished(self, task: SyncTask):
        self.events.append(("finished", task.target_environment))


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest_asyncio.fixture
async def http_client(store):
    transport = httpx.MockTransport(store.handle)
    async with httpx.AsyncClient(transport=transport) as client:
        yield client


@pytest.fixture
def project(tmp_path: Path) -> ProjectConfig:
    return ProjectConfig(
        project_id=PROJECT_ID,
        root_dir=tmp_path,
        engine_dir=tmp_path / "Engine",
        project_dir=tmp_path / "Demo",
        project_file=tmp_path / "Demo" / "Demo.uproject",
    )


@pytest.fixture
def provisioner(http_client) -> HttpResourceProvisioner:
    return HttpResourceProvisioner(http_client, BASE_URL, timeout=5)


@pytest.fixture
def gateway(http_client) -> HttpJobGateway:
    return HttpJobGateway(http_client, BASE_URL, timeout=5)


@pytest.fixture
def submitter(project, provisioner, gateway) -> JobSubmitter:
    return JobSubmitter(project, provisioner, gateway, LocalMarkerWriter())


@pytest.fixture
def monitor(gateway) -> JobMonitor:
    return JobMonitor(gateway)


@pytest.fixture
def service(submitter, monitor) -> SnapshotSyncService:
    return SnapshotSyncService(submitter, monitor)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()
