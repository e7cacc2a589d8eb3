"""
Exception hierarchy for fixity checks.
"""

__all__ = (
    "CheckPleaseError",
    "DuplicateJobIdentifierError",
    "FixityCheckNotFoundError",
    "InvalidTransitionError",
    "ObjectNotFoundError",
    "ObjectStoreError",
    "ReportedSizeMismatchError",
    "UnsupportedAlgorithmError",
)


class CheckPleaseError(Exception):
    """Base class for all service errors."""


class UnsupportedAlgorithmError(CheckPleaseError):
    def __init__(self, algorithm_name: str):
        self.algorithm_name = algorithm_name
        super().__init__(f"Unsupported checksum algorithm: {algorithm_name}")


class ObjectNotFoundError(CheckPleaseError):
    def __init__(self, bucket_name: str, object_path: str):
        self.bucket_name = bucket_name
        self.object_path = object_path
        super().__init__(f"Could not find object: bucket={bucket_name}, path={object_path}")


class ObjectStoreError(CheckPleaseError):
    """Any object store failure other than a missing key."""


class ReportedSizeMismatchError(CheckPleaseError):
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Object store reported an object size of {expected} bytes, but we only received {actual} bytes"
        )


class FixityCheckNotFoundError(CheckPleaseError):
    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Fixity check {record_id} not found")


class InvalidTransitionError(CheckPleaseError):
    def __init__(self, record_id: str, current: str, new: str):
        self.record_id = record_id
        self.current = current
        self.new = new
        super().__init__(f"Fixity check {record_id}: invalid transition {current} -> {new}")


class DuplicateJobIdentifierError(CheckPleaseError):
    def __init__(self, job_identifier: str):
        self.job_identifier = job_identifier
        super().__init__(f"A fixity check with job_identifier {job_identifier} already exists")
