from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from perfeval.core.errors import OpResult, Outcome, UnrecoverableError

STATUS_FOR_OUTCOME = {
    Outcome.NOT_AUTHORIZED: status.HTTP_404_NOT_FOUND,
    Outcome.NOT_PERMITTED: status.HTTP_403_FORBIDDEN,
    Outcome.INVALID_STATE: status.HTTP_409_CONFLICT,
    Outcome.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
}


def raise_for_result(result: OpResult) -> OpResult:
    """Turn a non-OK core outcome into the matching HTTP error; pass OK through."""
    if result:
        return result
    raise HTTPException(
        status_code=STATUS_FOR_OUTCOME[result.outcome],
        detail={"outcome": result.outcome.value, "message": result.reason},
    )


async def unrecoverable_error_handler(request: Request, exc: UnrecoverableError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Storage failure; no changes were applied"},
    )
