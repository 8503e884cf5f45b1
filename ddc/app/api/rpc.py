"""
JSON-RPC endpoint for the Builder and Extractor session families.

Envelope (JSON-RPC 1.0, as emitted by Go's net/rpc/jsonrpc)::

    request  {"method": "Builder.Register", "params": [{...}], "id": 1}
    response {"id": 1, "result": {...}, "error": null}

Failures a caller can cause (unknown id, wrong state, rejected scan, ...)
are reported inside the result as its ``Error`` string. The envelope
``error`` is reserved for malformed envelopes, unknown methods,
malformed params and internal errors.
"""

import logging
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError

from ddc.app.api import builder, extractor
from ddc.app.api.registry import RpcContext, RpcMethod, get_rpc_context
from ddc.app.core.errors import DDCError
from ddc.app.core.responses import json_response
from ddc.app.schemas.rpc import RpcRequest, RpcResponse

logger = logging.getLogger("ddc.api")

router = APIRouter(tags=["DDC Sessions"])

METHODS: Dict[str, RpcMethod] = {
    **builder.rpc.methods,
    **extractor.rpc.methods,
}


def _reply(
    request_id: Any,
    *,
    result: Any = None,
    error: Optional[str] = None,
) -> Response:
    envelope = RpcResponse(id=request_id, result=result, error=error)
    return json_response(envelope.model_dump(mode="json"))


def _describe(exc: ValidationError, root: str = "params") -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or root}: {err['msg']}"
        for err in exc.errors()
    )


# =============================================================================
# POST /rpc
# =============================================================================

@router.post(
    "/rpc",
    summary="Call a Builder.* or Extractor.* session method",
)
async def call(
    request: Request,
    ctx: Annotated[RpcContext, Depends(get_rpc_context)],
) -> Response:
    try:
        envelope = RpcRequest.model_validate_json(await request.body())
    except ValidationError as exc:
        logger.warning(
            "rpc_invalid_request", extra={"errors": exc.error_count()}
        )
        return _reply(
            None, error=f"invalid request: {_describe(exc, root='body')}"
        )

    method = METHODS.get(envelope.method)
    if method is None:
        logger.warning("rpc_unknown_method", extra={"method": envelope.method})
        return _reply(
            envelope.id, error=f"rpc: can't find method {envelope.method}"
        )

    try:
        args = method.args_model.model_validate(envelope.first_param())
    except ValidationError as exc:
        logger.warning(
            "rpc_invalid_params",
            extra={"method": method.name, "errors": exc.error_count()},
        )
        return _reply(envelope.id, error=f"invalid params: {_describe(exc)}")

    session_id = getattr(args, "session_id", None)

    try:
        result = await method.handler(args, ctx)
    except DDCError as exc:
        logger.warning(
            "rpc_call_failed",
            extra={
                "method": method.name,
                "session_id": session_id,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        result = method.resp_model(error=str(exc))
    except Exception:
        logger.exception(
            "rpc_internal_error",
            extra={"method": method.name, "session_id": session_id},
        )
        return _reply(envelope.id, error="internal error")

    logger.debug(
        "rpc_call_completed",
        extra={"method": method.name, "session_id": session_id},
    )
    return _reply(
        envelope.id,
        result=result.model_dump(by_alias=True, mode="json"),
    )
