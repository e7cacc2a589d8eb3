"""
CheckPlease MCP server: fixity check tools
"""

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from checkplease.core.errors import CheckPleaseError
from checkplease.schema.fixity_check import FixityCheckParams
from checkplease.worker.deps import get_fixity_check_store
from checkplease.worker.tasks import enqueue_fixity_check

__all__ = ("server",)

server = FastMCP("CheckPlease")


@server.tool()
async def run_fixity_check(
    bucket_name: str,
    object_path: str,
    checksum_algorithm_name: str = "sha256",
    job_identifier: str | None = None,
) -> str:
    """
    Queue a fixity check of an S3 object. Algorithms: sha256, sha512, md5, crc32c.
    Returns the pending record; poll get_fixity_check with its id for the result.
    """
    params = FixityCheckParams(
        bucket_name=bucket_name,
        object_path=object_path,
        checksum_algorithm_name=checksum_algorithm_name,
    )
    try:
        record = await enqueue_fixity_check(await get_fixity_check_store(), params, job_identifier=job_identifier)
    except CheckPleaseError as exc:
        raise ToolError(str(exc)) from exc
    return record.model_dump_json()


@server.tool()
async def get_fixity_check(record_id: str) -> str:
    """Get the status, checksum and size (or error) of a fixity check."""
    store = await get_fixity_check_store()
    record = await store.get(record_id)
    if record is None:
        raise ToolError(f"Fixity check {record_id} not found")
    return record.model_dump_json()


@server.tool()
async def find_fixity_check(job_identifier: str) -> str:
    """Get the fixity check started under a job identifier."""
    store = await get_fixity_check_store()
    record = await store.get_by_job_identifier(job_identifier)
    if record is None:
        raise ToolError(f"No fixity check with job_identifier {job_identifier}")
    return record.model_dump_json()
