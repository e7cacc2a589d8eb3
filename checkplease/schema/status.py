"""
Health check response model
"""

from pydantic import BaseModel, Field
from ulid import ULID


class HealthCheckResponse(BaseModel):
    """
    Health check response model.
    """

    status: str = Field(default="OK", description="Service status")
    version: str = Field(..., description="Service version")
    uptime: float = Field(..., description="Service uptime")
    exec_id: ULID = Field(..., description="Service execution ID")
    redis: bool = Field(..., description="Whether the record store answered a ping")
    inline_jobs: bool = Field(default=False, description="Fixity checks run in-process instead of on workers")


class IndexResponse(BaseModel):
    message: str = Field(default="CheckPlease", description="Welcome message")
