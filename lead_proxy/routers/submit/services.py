"""Service helpers used by the submission router."""

import json
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException

from lead_proxy import config
from lead_proxy.config import logger
from lead_proxy.core.forwarder import forward_submission
from lead_proxy.core.rate_limit import get_rate_limiter
from lead_proxy.core.validate_turnstile import VerificationResult, validate_turnstile

from .contexts import RequestContext, SecurityContext
from .utils import utc_timestamp

INVALID_JSON_MESSAGE = "Invalid JSON body"
MISSING_TOKEN_MESSAGE = "Security check failed. Refresh the page and try again."
VERIFICATION_FAILED_MESSAGE = "Please complete the verification challenge and try again."
RATE_LIMITED_MESSAGE = "Too many requests. Try again soon."

META_FIELD = "_meta"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_payload(raw_body: bytes) -> Dict[str, Any]:
    """Decode the request body; only a JSON object is accepted."""
    try:
        payload = json.loads(raw_body or b"", parse_constant=_reject_constant)
    except (ValueError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail=INVALID_JSON_MESSAGE)

    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail=INVALID_JSON_MESSAGE)

    return payload


def is_honeypot_hit(payload: Mapping[str, Any], field: str) -> bool:
    value = payload.get(field)
    return isinstance(value, str) and value.strip() != ""


def extract_token(payload: Mapping[str, Any], field: str) -> str:
    value = payload.get(field)
    return value.strip() if isinstance(value, str) else ""


def sanitize(payload: Mapping[str, Any], token_field: str) -> Dict[str, Any]:
    """Return a copy of the payload without the verification token."""
    return {key: value for key, value in payload.items() if key != token_field}


def build_meta(
    ctx: RequestContext, verification: Optional[VerificationResult] = None
) -> Dict[str, Any]:
    """Collect request metadata forwarded with every submission."""
    meta: Dict[str, Any] = {
        "ip": ctx.client_ip,
        "ua": ctx.user_agent,
        "ts": utc_timestamp(),
        "referer": ctx.referer,
        "origin": ctx.origin,
        "path": ctx.path,
    }

    if verification and verification.success and verification.details:
        details = verification.details
        turnstile: Dict[str, Any] = {
            "success": True,
            "challengeTs": details.challenge_ts or "",
            "hostname": details.hostname or "",
        }
        if details.score is not None:
            turnstile["score"] = details.score
        if details.action:
            turnstile["action"] = details.action
        if details.cdata:
            turnstile["cdata"] = details.cdata
        meta["turnstile"] = turnstile

    return meta


def enrich(payload: Mapping[str, Any], meta: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of the payload with metadata attached under ``_meta``."""
    return {**payload, META_FIELD: dict(meta)}


async def enforce_rate_limit(ctx: RequestContext) -> None:
    """Count the request against the client's window; raise 429 when over."""
    status = await get_rate_limiter().hit(
        ctx.client_ip,
        config.RATE_LIMIT_MAX_REQUESTS,
        config.RATE_LIMIT_WINDOW_SECONDS,
    )

    if status.exceeded:
        logger.warning(
            "Rate limit exceeded",
            extra={
                "client_ip": ctx.client_ip,
                "count": status.count,
                "limit": status.limit,
            },
        )
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMITED_MESSAGE,
            headers=status.headers(),
        )


async def validate_submission(
    ctx: RequestContext, payload: Dict[str, Any]
) -> SecurityContext:
    """Run the honeypot and Turnstile checks and strip the token field."""

    if is_honeypot_hit(payload, config.HONEYPOT_FIELD):
        logger.debug(
            "Honeypot field filled, absorbing submission",
            extra={"client_ip": ctx.client_ip},
        )
        return SecurityContext(payload={}, is_bot=True)

    verification: Optional[VerificationResult] = None
    if config.TURNSTILE_SECRET:
        token = extract_token(payload, config.TURNSTILE_TOKEN_FIELD)
        if not token:
            logger.warning("Turnstile token missing", extra={"client_ip": ctx.client_ip})
            raise HTTPException(status_code=400, detail=MISSING_TOKEN_MESSAGE)

        verification = await validate_turnstile(
            token,
            config.TURNSTILE_SECRET,
            ctx.client_ip,
            url=config.TURNSTILE_VERIFY_URL,
            timeout=config.TURNSTILE_TIMEOUT_SECONDS,
        )
        if not verification.success:
            logger.warning(
                "Turnstile validation failed", extra={"client_ip": ctx.client_ip}
            )
            raise HTTPException(status_code=400, detail=VERIFICATION_FAILED_MESSAGE)

    return SecurityContext(
        payload=sanitize(payload, config.TURNSTILE_TOKEN_FIELD),
        verification=verification,
    )


async def forward(ctx: RequestContext, security: SecurityContext) -> None:
    """Enrich the sanitized payload and relay it upstream; raise on failure."""
    if not config.UPSTREAM_WEBHOOK_URL:
        logger.error("UPSTREAM_WEBHOOK_URL not configured")
        raise HTTPException(
            status_code=500,
            detail="Server configuration error: upstream webhook URL not configured",
        )

    enriched = enrich(security.payload, build_meta(ctx, security.verification))

    result = await forward_submission(
        config.UPSTREAM_WEBHOOK_URL,
        enriched,
        timeout=config.UPSTREAM_TIMEOUT_SECONDS,
    )
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.message)
