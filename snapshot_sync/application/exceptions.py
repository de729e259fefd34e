"""
Core exceptions for the snapshot sync application.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains.
"""


class SnapshotSyncError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(SnapshotSyncError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(SnapshotSyncError):
    """Base class for errors related to external systems (store, disk, etc.)."""
    pass


class ProvisioningError(InfrastructureError):
    """Raised when a project or oplog cannot be found or created on the store."""
    pass


class SubmissionError(InfrastructureError):
    """Raised when the store does not accept an import request."""
    pass


class JobQueryError(InfrastructureError):
    """
    Raised when the status of a job cannot be obtained.

    The message is the raw response body when the store sent one, so it can
    be surfaced to the user as-is.
    """
    pass


class MarkerWriteError(InfrastructureError):
    """Raised when the project store marker file cannot be written."""
    pass


class CompactBinaryError(InfrastructureError):
    """Raised when a compact binary payload cannot be encoded or decoded."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(SnapshotSyncError):
    """Base class for errors related to business logic failures."""
    pass


class DescriptorError(DomainError):
    """Raised when a snapshot descriptor document cannot be read."""
    pass
