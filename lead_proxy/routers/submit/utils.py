"""Utility helpers for the submission router."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from lead_proxy import config

from .contexts import RequestContext

UNKNOWN_IP = "unknown"


def get_client_ip(request: Request) -> str:
    """Extract the requester IP from edge and proxy headers."""
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip and cf_ip.strip():
        return cf_ip.strip()

    if config.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        if forwarded:
            return forwarded

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_IP


def build_request_context(request: Request) -> RequestContext:
    return RequestContext(
        method=request.method.upper(),
        origin=request.headers.get("Origin", ""),
        client_ip=get_client_ip(request),
        user_agent=request.headers.get("User-Agent", ""),
        referer=request.headers.get("Referer", ""),
        path=request.url.path,
    )


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def json_response(
    body: Dict[str, Any],
    status_code: int,
    cors_headers: Dict[str, str],
    extra_headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    headers = {**cors_headers, **(extra_headers or {})}
    return JSONResponse(content=body, status_code=status_code, headers=headers)


def empty_response(status_code: int, cors_headers: Dict[str, str]) -> Response:
    return Response(status_code=status_code, headers=dict(cors_headers))
