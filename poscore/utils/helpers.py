from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.responses import JSONResponse


def serialize_doc(doc):
    """Recursively convert datetimes in a stored row to ISO strings."""
    if isinstance(doc, list):
        return [serialize_doc(d) for d in doc]
    if isinstance(doc, dict):
        return {k: serialize_doc(v) for k, v in doc.items()}
    if isinstance(doc, datetime):
        return doc.isoformat()
    return doc


def success_response(
    data: Optional[Any] = None,
    message: str = "Success",
    code: int = 200,
) -> JSONResponse:
    content = {"success": True, "message": message}
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=code, content=content)


def error_response(message: str, code: int = 400) -> JSONResponse:
    """Error envelope shared by API handlers and the global exception handler."""
    return JSONResponse(
        status_code=code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
