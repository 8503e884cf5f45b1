from typing import Any

import orjson
from fastapi import Response


def json_response(content: Any, status_code: int = 200) -> Response:
    """Serialize JSON-ready ``content`` with orjson."""
    return Response(
        content=orjson.dumps(content),
        status_code=status_code,
        media_type="application/json",
    )
