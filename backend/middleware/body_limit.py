"""
Request body size limit.

Snapshots carry embedded images, so the limit is generous (10 MiB by
default) but bounded. A declared Content-Length is checked before the body
is read; a body sent without one (chunked) is read and measured here.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from backend.config import settings

logger = logging.getLogger(__name__)


def _too_large(request: Request, size: int | str) -> JSONResponse:
    logger.warning("body_limit: rejected %s %s (%s bytes)", request.method, request.url.path, size)
    return JSONResponse(status_code=413, content={"detail": "Request body too large."})


async def limit_body_size(request: Request, call_next):
    """HTTP middleware: reject bodies larger than MAX_BODY_BYTES with 413."""
    limit = settings.MAX_BODY_BYTES
    length = request.headers.get("content-length")
    if length is not None:
        try:
            declared = int(length)
        except ValueError:
            return JSONResponse(status_code=400, content={"detail": "Invalid Content-Length header."})
        if declared > limit:
            return _too_large(request, length)
        return await call_next(request)

    if request.method in ("GET", "HEAD", "OPTIONS"):
        return await call_next(request)

    # No declared length (chunked): buffer it here; call_next replays the cached body
    body = await request.body()
    if len(body) > limit:
        return _too_large(request, len(body))
    return await call_next(request)
