"""FastAPI router for the form submission gateway."""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response

from lead_proxy import config
from lead_proxy.config import logger
from lead_proxy.core.cors import parse_allowed_origins, resolve_cors

from .models import ErrorResponse, HealthResponse, SubmissionAccepted
from .services import enforce_rate_limit, forward, parse_payload, validate_submission
from .utils import build_request_context, empty_response, json_response

router = APIRouter(tags=["Submissions"])

SUPPORTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Simple health check endpoint."""

    return HealthResponse(
        status="healthy",
        service="lead-proxy",
        version=config.APP_VERSION,
    )


@router.api_route("/{path:path}", methods=SUPPORTED_METHODS, include_in_schema=False)
async def handle_submission(request: Request, path: str = "") -> Response:
    """Gate, validate and forward a form submission."""

    ctx = build_request_context(request)
    cors = resolve_cors(
        ctx.origin,
        parse_allowed_origins(config.ALLOWED_ORIGINS),
        strict=config.STRICT_ORIGINS,
    )

    if ctx.method == "OPTIONS":
        return empty_response(204 if cors.allowed else 403, cors.headers)

    if ctx.method != "POST":
        return json_response(
            ErrorResponse(message="Method not allowed").model_dump(), 405, cors.headers
        )

    if not cors.allowed:
        logger.warning(
            "Origin not allowed",
            extra={"origin": ctx.origin, "client_ip": ctx.client_ip},
        )
        return json_response(
            ErrorResponse(message="Origin not allowed").model_dump(), 403, cors.headers
        )

    try:
        await enforce_rate_limit(ctx)

        payload = parse_payload(await request.body())
        security = await validate_submission(ctx, payload)

        if security.is_bot:
            return json_response(SubmissionAccepted().model_dump(), 200, cors.headers)

        await forward(ctx, security)

        logger.info(
            "Submission accepted",
            extra={
                "client_ip": ctx.client_ip,
                "origin": ctx.origin,
                "verified": security.verification is not None,
            },
        )
        return json_response(SubmissionAccepted().model_dump(), 200, cors.headers)

    except HTTPException as http_exc:
        return json_response(
            ErrorResponse(message=str(http_exc.detail)).model_dump(),
            http_exc.status_code,
            cors.headers,
            extra_headers=dict(http_exc.headers or {}),
        )

    except Exception:
        logger.error("Unexpected error while handling submission", exc_info=True)
        return json_response(
            ErrorResponse(message="Internal server error").model_dump(),
            500,
            cors.headers,
        )
