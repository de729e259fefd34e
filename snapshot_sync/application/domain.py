"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the sync logic operates on, together with the ports that
infrastructure adapters implement.
"""

import dataclasses
import enum
from pathlib import Path

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union


# --- Snapshot Sources ---

@dataclasses.dataclass(frozen=True)
class FileSource:
    """A snapshot stored as a file on a (possibly shared) filesystem."""

    directory: str
    filename: str


@dataclasses.dataclass(frozen=True)
class CloudSource:
    """A snapshot stored in a cloud bucket."""

    host: str
    namespace: str
    bucket: str
    key: str


@dataclasses.dataclass(frozen=True)
class StoreOplogSource:
    """A snapshot held as an oplog on another store instance."""

    host: str
    project_id: str
    oplog_id: str


SnapshotSource = Union[FileSource, CloudSource, StoreOplogSource]


@dataclasses.dataclass(frozen=True)
class SnapshotDescriptor:
    """A named snapshot that can be synced into one target environment."""

    name: str
    target_environment: str
    source: SnapshotSource


@dataclasses.dataclass(frozen=True)
class ProjectConfig:
    """
    Identity and provisioning metadata of the local project.

    The four paths are forwarded to the store when the project has to be
    created; they are not interpreted otherwise. A project without a
    project file sends an empty one.
    """

    project_id: str
    root_dir: Path
    engine_dir: Path
    project_dir: Path
    project_file: Optional[Path] = None


# --- Job Status ---

class JobStatus(str, enum.Enum):
    """Status of a job as reported by the store."""

    QUEUED = "Queued"
    RUNNING = "Running"
    COMPLETE = "Complete"
    ABORTED = "Aborted"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


@dataclasses.dataclass(frozen=True)
class JobReport:
    """A transient data object for one status query of a job."""

    status: JobStatus
    current_operation: str = ""
    percent_complete: int = 0
    abort_reason: str = ""
    messages: Tuple[str, ...] = ()


class MessagePolicy(str, enum.Enum):
    """
    How job messages from successive polls are added to a handle.

    APPEND adds everything the store returned on every poll, NEW treats the
    store's list as cumulative and only adds unseen entries, IGNORE drops the
    messages entirely.
    """

    APPEND = "append"
    NEW = "new"
    IGNORE = "ignore"


class SyncStatus(enum.Enum):
    UNSTARTED = "unstarted"
    ACTIVE = "active"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclasses.dataclass(eq=False)
class SyncHandle:
    """
    The client-side record of one snapshot sync job.

    A handle without a job id is invalid: the sync was never started. Once
    the handle is complete or carries an error message it is terminal and
    is no longer updated.
    """

    job_id: str = ""
    complete: bool = False
    error_message: str = ""
    current_operation: str = ""
    progress: float = 0.0
    messages: List[str] = dataclasses.field(default_factory=list)

    def __setattr__(self, name, value):
        if name == "job_id" and "job_id" in self.__dict__:
            raise AttributeError("job_id is assigned once, at submission")
        super().__setattr__(name, value)

    @property
    def is_valid(self) -> bool:
        return bool(self.job_id)

    @property
    def is_error(self) -> bool:
        return bool(self.error_message)

    @property
    def is_terminal(self) -> bool:
        return self.complete or self.is_error

    @property
    def is_active(self) -> bool:
        return self.is_valid and not self.is_terminal

    @property
    def state(self) -> str:
        """Name of the operation the job is currently running."""
        return self.current_operation

    @property
    def status(self) -> SyncStatus:
        if not self.is_valid:
            return SyncStatus.UNSTARTED
        if self.is_error:
            return SyncStatus.FAILED
        if self.complete:
            return SyncStatus.COMPLETE
        return SyncStatus.ACTIVE


@dataclasses.dataclass
class SyncTask:
    """A sync tracked by a session, keyed by its target environment."""

    descriptor: SnapshotDescriptor
    handle: SyncHandle
    cancel_requested: bool = False
    cancelled: bool = False

    @property
    def target_environment(self) -> str:
        return self.descriptor.target_environment

    @property
    def outcome(self) -> str:
        if self.cancelled:
            return "cancelled"
        return self.handle.status.value


# --- Ports (Interfaces) ---

class ResourceProvisioner(ABC):
    """A port that makes sure the store resources of an import exist."""

    @abstractmethod
    async def ensure_project(self, project: ProjectConfig) -> None:
        """Creates the project on the store unless it already exists."""
        pass

    @abstractmethod
    async def ensure_oplog(
        self, project_id: str, oplog_id: str, gc_path: Path
    ) -> None:
        """Creates the oplog on the store unless it already exists."""
        pass


class JobGateway(ABC):
    """A port for submitting and tracking store jobs."""

    @abstractmethod
    async def start_import(
        self, project_id: str, oplog_id: str, params: Dict[str, Any]
    ) -> str:
        """Submits an import and returns the opaque job id."""
        pass

    @abstractmethod
    async def fetch_status(self, job_id: str) -> JobReport:
        """
        Queries the current status of a job.
        Raises JobQueryError when no status could be obtained.
        """
        pass

    @abstractmethod
    async def cancel(self, job_id: str) -> bool:
        """Requests cancellation of a job; returns whether it was accepted."""
        pass


class MarkerWriter(ABC):
    """A port for writing the local project store marker file."""

    @abstractmethod
    async def write(self, path: Path, content: Dict[str, Any]):
        """
        Writes the marker content to path.
        Raises MarkerWriteError on failure.
        """
        pass


class DescriptorReader(ABC):
    """A port for reading snapshot descriptor documents."""

    @abstractmethod
    def read(self, data: bytes) -> List[SnapshotDescriptor]:
        """Parses a descriptor document into snapshot descriptors."""
        pass


class SyncReporter(ABC):
    """A port for presenting the progress of tracked syncs."""

    @abstractmethod
    def started(self, task: SyncTask):
        pass

    @abstractmethod
    def updated(self, task: SyncTask):
        pass

    @abstractmethod
    def finished(self, task: SyncTask):
        pass

