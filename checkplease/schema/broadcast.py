"""
Broadcast message shapes published on a fixity check's topic.
"""

from typing import Literal

from pydantic import BaseModel


class FixityCheckInProgressMessage(BaseModel):
    type: Literal["fixity_check_in_progress"] = "fixity_check_in_progress"


class FixityCheckCompleteData(BaseModel):
    bucket_name: str
    object_path: str
    checksum_algorithm_name: str
    checksum_hexdigest: str
    object_size: int


class FixityCheckCompleteMessage(BaseModel):
    type: Literal["fixity_check_complete"] = "fixity_check_complete"
    data: FixityCheckCompleteData


class FixityCheckErrorData(BaseModel):
    error_message: str
    bucket_name: str
    object_path: str
    checksum_algorithm_name: str


class FixityCheckErrorMessage(BaseModel):
    type: Literal["fixity_check_error"] = "fixity_check_error"
    data: FixityCheckErrorData


BroadcastMessage = FixityCheckInProgressMessage | FixityCheckCompleteMessage | FixityCheckErrorMessage
