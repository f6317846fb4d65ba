"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class StorageDestination(StrEnum):
    PRIMARY = "primary"
    OBJECT_STORE = "object_store"


class Datatype(StrEnum):
    STRING = "string"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"
    GEOGRAPHY_POINT = "geography_point"
    BINARY = "binary"

    @property
    def default_destination(self) -> StorageDestination:
        """Binary payloads go to the object store, everything else to the primary store."""
        if self is Datatype.BINARY:
            return StorageDestination.OBJECT_STORE
        return StorageDestination.PRIMARY


class UpdateType(StrEnum):
    MERGE = "merge"
    PARTIAL_REPLACE = "partial_replace"
    REPLACE = "replace"


class JobStatus(StrEnum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class Environment(StrEnum):
    PRODUCTION = "production"
    STAGING = "staging"
    LOCAL = "local"
    TESTING = "testing"
