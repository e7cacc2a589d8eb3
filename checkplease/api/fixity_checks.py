"""
Fixity check REST endpoints
"""

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from checkplease.api.deps import verify_token
from checkplease.core.errors import CheckPleaseError
from checkplease.core.fixity import FixityCheckEngine
from checkplease.core.log import logger
from checkplease.schema.fixity_check import (
    FixityCheckErrorResponse,
    FixityCheckParams,
    FixityCheckRecord,
    FixityCheckResult,
)
from checkplease.worker.deps import get_fixity_check_engine, get_fixity_check_store
from checkplease.worker.fixity_state import FixityCheckStore
from checkplease.worker.tasks import enqueue_fixity_check

__all__ = ("router",)

router = APIRouter(
    prefix="/v1",
    tags=["fixity_checks"],
    dependencies=[Depends(verify_token)],
)


def _bad_request(error_message: str, params: FixityCheckParams | None = None) -> JSONResponse:
    body = FixityCheckErrorResponse(
        error_message=error_message,
        **(params.model_dump() if params else {}),
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


@router.post(
    "/fixity_checks",
    responses={400: {"model": FixityCheckErrorResponse}},
)
async def create_fixity_check(
    fixity_check: FixityCheckParams = Body(..., embed=True),  # noqa: B008
    store: FixityCheckStore = Depends(get_fixity_check_store),  # noqa: B008
) -> FixityCheckRecord:
    """Create a pending fixity check and queue it. Subscribe to its job_identifier for results."""
    try:
        return await enqueue_fixity_check(store, fixity_check)
    except CheckPleaseError as exc:
        return _bad_request(str(exc))  # type: ignore[return-value]


@router.post(
    "/fixity_checks/run_fixity_check_for_s3_object",
    responses={400: {"model": FixityCheckErrorResponse}},
)
async def run_fixity_check_for_s3_object(
    fixity_check: FixityCheckParams = Body(..., embed=True),  # noqa: B008
    engine: FixityCheckEngine = Depends(get_fixity_check_engine),  # noqa: B008
) -> FixityCheckResult:
    """Run a fixity check synchronously and return the digest and size."""
    try:
        result = await engine.check(
            fixity_check.bucket_name,
            fixity_check.object_path,
            fixity_check.checksum_algorithm_name,
        )
    except Exception as exc:
        logger.warning(
            f"Synchronous fixity check of {fixity_check.bucket_name}/{fixity_check.object_path} failed: {exc}"
        )
        return _bad_request(str(exc), fixity_check)  # type: ignore[return-value]

    return FixityCheckResult(
        bucket_name=fixity_check.bucket_name,
        object_path=fixity_check.object_path,
        checksum_algorithm_name=fixity_check.checksum_algorithm_name,
        checksum_hexdigest=result.hexdigest,
        object_size=result.size_bytes,
    )


@router.get("/fixity_checks/{record_id}")
async def get_fixity_check(
    record_id: str,
    store: FixityCheckStore = Depends(get_fixity_check_store),  # noqa: B008
) -> FixityCheckRecord:
    """Get the current state of a fixity check."""
    record = await store.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Fixity check not found")
    return record
