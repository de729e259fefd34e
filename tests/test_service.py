"""
Tests for the sync service facade and the session tracking syncs per target.
"""

import pytest

from snapshot_sync.application.domain import (
    FileSource,
    SnapshotDescriptor,
)
from snapshot_sync.application.service import SyncSession

from conftest import (
    RPC_PATH_TEMPLATE,
    job_route,
    job_status,
    text,
)


def descriptor(target: str, name: str = "Nightly") -> SnapshotDescriptor:
    return SnapshotDescriptor(
        name=name,
        target_environment=target,
        source=FileSource(directory="//share/snapshots", filename=f"{target}.oplog"),
    )


@pytest.fixture
def session(service, reporter) -> SyncSession:
    return SyncSession(service, reporter)


class TestSnapshotQueries:
    """Tests for registering snapshot descriptor providers."""

    @pytest.mark.asyncio
    async def test_no_providers(self, service):
        assert not service.can_query_snapshots()
        assert service.query_snapshots() == []

    @pytest.mark.asyncio
    async def test_register_and_unregister(self, service):
        first = service.register_query_callback(lambda: [descriptor("Windows")])
        second = service.register_query_callback(lambda: [descriptor("Linux")])

        assert service.can_query_snapshots()
        assert [d.target_environment for d in service.query_snapshots()] == [
            "Windows", "Linux"
        ]

        service.unregister_query_callback(first)
        assert [d.target_environment for d in service.query_snapshots()] == ["Linux"]

        service.unregister_query_callback(second)
        assert not service.can_query_snapshots()


class TestRequestSync:
    """Tests for the request shortcuts of each source kind."""

    @pytest.mark.asyncio
    async def test_request_sync(self, store, service):
        store.serve_existing_resources("Windows")
        store.accept_import("Windows", "job-1")

        handle = await service.request_sync(descriptor("Windows"))

        assert handle.job_id == "job-1"
        assert store.payload(
            "POST", RPC_PATH_TEMPLATE.format(target="Windows")
        )["params"] == {
            "file": {"path": "//share/snapshots", "name": "Windows.oplog"}
        }

    @pytest.mark.asyncio
    async def test_request_sync_from_cloud(self, store, service):
        store.serve_existing_resources("Linux")
        store.accept_import("Linux", "job-2")

        handle = await service.request_sync_from_cloud(
            "Linux", "https://cloud.example.com", "game.oplog", "linux", "0123abcd"
        )

        assert handle.is_valid
        assert store.payload(
            "POST", RPC_PATH_TEMPLATE.format(target="Linux")
        )["params"] == {
            "cloud": {
                "url": "https://cloud.example.com",
                "namespace": "game.oplog",
                "bucket": "linux",
                "key": "0123abcd",
            }
        }

    @pytest.mark.asyncio
    async def test_request_sync_from_store(self, store, service):
        store.serve_existing_resources("Android")
        store.accept_import("Android", "job-3")

        handle = await service.request_sync_from_store(
            "Android", "http://build-store:8558", "game", "Android_ASTC"
        )

        assert handle.is_valid
        assert store.payload(
            "POST", RPC_PATH_TEMPLATE.format(target="Android")
        )["params"] == {
            "zen": {
                "url": "http://build-store:8558",
                "project": "game",
                "oplog": "Android_ASTC",
            }
        }

    @pytest.mark.asyncio
    async def test_request_sync_from_file(self, store, service):
        store.serve_existing_resources("Windows")
        store.accept_import("Windows", "job-4")

        handle = await service.request_sync_from_file(
            "Windows", "//share/snapshots", "Windows.oplog"
        )

        assert handle.job_id == "job-4"


class TestSyncSession:
    """Tests for tracking syncs, one per target environment."""

    @pytest.mark.asyncio
    async def test_sync_until_complete(self, store, session, reporter):
        store.serve_existing_resources("Windows")
        store.accept_import("Windows", "job-1")
        store.respond(
            "GET", job_route("job-1"),
            job_status("Running", "Copy", 50),
            job_status("Complete", "Finalize", 100),
        )

        assert await session.sync(descriptor("Windows")) is True
        await session.run(poll_interval=0)

        assert session.tasks == {}
        assert [t.outcome for t in session.finished] == ["complete"]
        assert reporter.events == [
            ("started", "Windows"),
            ("updated", "Windows"),
            ("updated", "Windows"),
            ("finished", "Windows"),
        ]

    @pytest.mark.asyncio
    async def test_one_sync_per_target(self, store, session):
        """Test a second sync for a busy target is refused without requests."""
        store.serve_existing_resources("Windows")
        store.accept_import("Windows", "job-1")

        assert await session.sync(descriptor("Windows", "Nightly")) is True
        request_count = len(store.requests)

        assert not session.can_sync(descriptor("Windows", "Release"))
        assert await session.sync(descriptor("Windows", "Release")) is False
        assert len(store.requests) == request_count

    @pytest.mark.asyncio
    async def test_targets_sync_side_by_side(self, store, session):
        for target, job_id in (("Windows", "job-w"), ("Linux", "job-l")):
            store.serve_existing_resources(target)
            store.accept_import(target, job_id)
        store.respond("GET", job_route("job-w"), job_status("Complete"))
        store.respond("GET", job_route("job-l"), job_status("Running", "Copy", 10))

        await session.sync(descriptor("Windows"))
        await session.sync(descriptor("Linux"))

        assert await session.tick() is True
        assert list(session.tasks) == ["Linux"]
        assert session.tasks["Linux"].handle.progress == 0.1

    @pytest.mark.asyncio
    async def test_failed_submit_is_not_tracked(self, store, session, reporter):
        store.serve_existing_resources("Windows")
        store.respond("POST", RPC_PATH_TEMPLATE.format(target="Windows"), text(500))

        assert await session.sync(descriptor("Windows")) is False
        assert session.tasks == {}
        assert reporter.events == []

    @pytest.mark.asyncio
    async def test_failed_job_is_dropped(self, store, session):
        store.serve_existing_resources("Windows")
        store.accept_import("Windows", "job-1")
        store.respond("GET", job_route("job-1"), job_status("Aborted", AbortReason="disk full"))

        await session.sync(descriptor("Windows"))

        assert await session.tick() is False
        assert session.finished[0].handle.error_message == "disk full"
        assert session.finished[0].outcome == "failed"

    @pytest.mark.asyncio
    async def test_requested_cancel(self, store, session):
        store.serve_existing_resources("Windows")
        store.accept_import("Windows", "job-1")
        store.respond("GET", job_route("job-1"), job_status("Running", "Copy", 10))
        store.respond("DELETE", job_route("job-1"), text(200))

        await session.sync(descriptor("Windows"))
        assert session.request_cancel("Windows") is True

        assert await session.tick() is False
        assert ("DELETE", job_route("job-1")) in store.calls()
        assert session.finished[0].outcome == "cancelled"

    @pytest.mark.asyncio
    async def test_refused_cancel_is_retried(self, store, session):
        """Test a task stays tracked until its cancel is accepted."""
        store.serve_existing_resources("Windows")
        store.accept_import("Windows", "job-1")
        store.respond("GET", job_route("job-1"), job_status("Running", "Copy", 10))
        store.respond("DELETE", job_route("job-1"), text(500), text(200))

        await session.sync(descriptor("Windows"))
        session.request_cancel("Windows")

        assert await session.tick() is True
        assert await session.tick() is False
        assert store.calls().count(("DELETE", job_route("job-1"))) == 2

    @pytest.mark.asyncio
    async def test_cancel_unknown_target(self, session):
        assert session.request_cancel("Windows") is False

    @pytest.mark.asyncio
    async def test_cancel_all(self, store, session, reporter):
        store.serve_existing_resources("Windows")
        store.accept_import("Windows", "job-1")
        store.respond("DELETE", job_route("job-1"), text(200))

        await session.sync(descriptor("Windows"))
        await session.cancel_all()

        assert session.tasks == {}
        assert session.finished[0].outcome == "cancelled"
        assert reporter.events[-1] == ("finished", "Windows")
