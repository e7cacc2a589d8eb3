"""
Fixity check record, request and response models.
"""

from datetime import datetime
from enum import StrEnum
from typing import NamedTuple

from pydantic import BaseModel, Field, field_validator


class FixityCheckStatus(StrEnum):
    pending = "pending"
    in_progress = "in_progress"
    success = "success"
    failure = "failure"

    @property
    def is_terminal(self) -> bool:
        return self in (FixityCheckStatus.success, FixityCheckStatus.failure)


class ChecksumResult(NamedTuple):
    hexdigest: str
    size_bytes: int


class FixityCheckRecord(BaseModel):
    """A persisted fixity check, as stored in its Redis hash."""

    id: str
    job_identifier: str
    bucket_name: str
    object_path: str
    checksum_algorithm_name: str
    checksum_hexdigest: str | None = None
    object_size: int | None = None
    status: FixityCheckStatus = FixityCheckStatus.pending
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_hash(cls, data: dict[str, str]) -> "FixityCheckRecord":
        """Build from a Redis hash; absent fields are null."""
        return cls.model_validate(data)


class FixityCheckParams(BaseModel):
    bucket_name: str = Field(..., min_length=1)
    object_path: str = Field(..., min_length=1)
    checksum_algorithm_name: str = Field(..., min_length=1)

    @field_validator("bucket_name", "object_path", "checksum_algorithm_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("value is empty")
        return value


class FixityCheckResult(BaseModel):
    """Response of a synchronous fixity check."""

    bucket_name: str
    object_path: str
    checksum_algorithm_name: str
    checksum_hexdigest: str
    object_size: int


class FixityCheckErrorResponse(BaseModel):
    """Client-facing error: the message plus whatever request params were given."""

    error_message: str
    bucket_name: str | None = None
    object_path: str | None = None
    checksum_algorithm_name: str | None = None
