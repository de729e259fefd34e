"""
Pydantic models for validating store responses and descriptor documents.

These models serve as a strict contract for the expected data, ensuring
that any deviation from this structure is caught at the infrastructure layer
before being passed to the application core.
"""

from typing import Annotated, Any, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


# --- Store Responses ---

class JobStatusResponse(BaseModel):
    """
    Represents the status object returned for a job.

    Every field is optional: a missing Status maps to an unknown job status
    and keeps the job polled. The store also reports fields like the job id
    and timestamps, which are ignored.
    """

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field("", alias="Status")
    current_op: str = Field("", alias="CurrentOp")
    percent_complete: int = Field(0, alias="CurrentOpPercentComplete")
    abort_reason: str = Field("", alias="AbortReason")
    messages: List[str] = Field(default_factory=list, alias="Messages")

    @field_validator("status", "current_op", "abort_reason", mode="before")
    @classmethod
    def empty_when_null(cls, value):
        return "" if value is None else value

    @field_validator("messages", mode="before")
    @classmethod
    def coerce_messages(cls, value):
        """Turns missing or non-text message entries into strings."""
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            return [str(value)]
        return ["" if item is None else str(item) for item in value]


# --- Snapshot Descriptors ---

class _SnapshotEntry(BaseModel):
    name: str = ""
    targetplatform: str = Field(min_length=1)


class FileSnapshotEntry(_SnapshotEntry):
    type: Literal["file"]
    directory: str
    filename: str


class CloudSnapshotEntry(_SnapshotEntry):
    type: Literal["cloud"]
    host: str
    namespace: str
    bucket: str
    key: str


class ZenSnapshotEntry(_SnapshotEntry):
    type: Literal["zen"]
    host: str
    projectid: str
    oplogid: str


SnapshotEntry = Annotated[
    Union[FileSnapshotEntry, CloudSnapshotEntry, ZenSnapshotEntry],
    Field(discriminator="type"),
]

snapshot_entry_adapter = TypeAdapter(SnapshotEntry)


class DescriptorDocument(BaseModel):
    """
    Represents the top-level descriptor document.

    Entries are validated one by one so that a single bad entry does not
    hide the others.
    """

    snapshots: List[Any]
