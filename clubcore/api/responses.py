"""Response envelopes shared by all routers."""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from clubcore.core.correlation import CAUSATION_HEADER, CORRELATION_HEADER, RequestContext
from clubcore.services.command_service import CommandResult

REPLAYED_HEADER = "X-Idempotency-Replayed"


def command_response(result: CommandResult, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    headers = {
        CORRELATION_HEADER: result.correlation_id,
        CAUSATION_HEADER: result.causation_id,
    }
    if result.replayed:
        headers[REPLAYED_HEADER] = "true"
    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json"),
        headers=headers,
    )


def read_response(data: Any, context: RequestContext) -> dict:
    return {
        "data": data,
        "correlation_id": context.correlation_id,
        "causation_id": context.causation_id,
        "replayed": False,
    }
