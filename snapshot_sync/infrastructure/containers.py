"""
Dependency Injection container for the snapshot_sync component.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration.
"""

from pathlib import Path

from dependency_injector import containers, providers
import httpx

from ..application.domain import *
from ..application.monitor import JobMonitor
from ..application.service import SnapshotSyncService, SyncSession
from ..application.submitter import JobSubmitter
from ..settings import settings

from .descriptors import JsonDescriptorReader
from .jobs_client import HttpJobGateway
from .marker import LocalMarkerWriter
from .progress import TqdmSyncReporter
from .provisioner import HttpResourceProvisioner


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    config = providers.Object(settings)

    # One connection pool shared by every adapter
    http_client = providers.Singleton(httpx.AsyncClient)

    project = providers.Factory(
        ProjectConfig,
        project_id=config().STORE.project_id,
        root_dir=Path(config().project.root_dir),
        engine_dir=Path(config().project.engine_dir),
        project_dir=Path(config().project.project_dir),
        project_file=(
            Path(config().project.project_file)
            if config().project.project_file else None
        ),
    )

    provisioner: providers.Factory[ResourceProvisioner] = providers.Factory(
        HttpResourceProvisioner,
        client=http_client,
        base_url=config().STORE.base_url,
        timeout=config().STORE.timeout,
    )

    job_gateway: providers.Factory[JobGateway] = providers.Factory(
        HttpJobGateway,
        client=http_client,
        base_url=config().STORE.base_url,
        timeout=config().STORE.timeout,
    )

    marker_writer: providers.Factory[MarkerWriter] = providers.Factory(
        LocalMarkerWriter
    )

    descriptor_reader: providers.Factory[DescriptorReader] = providers.Factory(
        JsonDescriptorReader
    )

    submitter = providers.Factory(
        JobSubmitter,
        project=project,
        provisioner=provisioner,
        gateway=job_gateway,
        marker_writer=marker_writer,
        marker_name=config().sync.marker_name,
    )

    monitor = providers.Factory(
        JobMonitor,
        gateway=job_gateway,
        message_policy=MessagePolicy(config().sync.message_policy),
    )

    sync_service = providers.Singleton(
        SnapshotSyncService,
        submitter=submitter,
        monitor=monitor,
    )

    reporter: providers.Factory[SyncReporter] = providers.Factory(
        TqdmSyncReporter
    )

    sync_session = providers.Factory(
        SyncSession,
        service=sync_service,
        reporter=reporter,
    )
