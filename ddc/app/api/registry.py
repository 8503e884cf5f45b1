"""
RPC method registry.

``RpcRouter`` plays the role of an ``APIRouter`` for the ``Service.Method``
namespace of the JSON-RPC endpoint: each session family declares its
handlers on its own router and ``ddc.app.api.rpc`` merges them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Type

from fastapi import Request

from ddc.app.schemas.document import WireModel
from ddc.app.schemas.rpc import ErrorResp
from ddc.app.services.clamav import Scanner
from ddc.app.services.renderer import DocumentRenderer
from ddc.app.sessions.store import SessionStore


@dataclass(frozen=True)
class RpcContext:
    """Shared services a handler may use."""

    store: SessionStore
    scanner: Scanner
    renderer: DocumentRenderer


def get_rpc_context(request: Request) -> RpcContext:
    state = request.app.state
    return RpcContext(
        store=state.store,
        scanner=state.scanner,
        renderer=state.renderer,
    )


Handler = Callable[[Any, RpcContext], Awaitable[ErrorResp]]


@dataclass(frozen=True)
class RpcMethod:
    name: str
    args_model: Type[WireModel]
    resp_model: Type[ErrorResp]
    handler: Handler


class RpcRouter:
    def __init__(self, service: str) -> None:
        self.service = service
        self.methods: Dict[str, RpcMethod] = {}

    def method(
        self,
        name: str,
        args_model: Type[WireModel],
        resp_model: Type[ErrorResp] = ErrorResp,
    ) -> Callable[[Handler], Handler]:
        full_name = f"{self.service}.{name}"

        def decorator(handler: Handler) -> Handler:
            if full_name in self.methods:
                raise RuntimeError(f"rpc method {full_name} registered twice")
            self.methods[full_name] = RpcMethod(
                name=full_name,
                args_model=args_model,
                resp_model=resp_model,
                handler=handler,
            )
            return handler

        return decorator
