from typing import Any, Optional

import httpx
import pydantic

from lead_proxy.config import logger


# Export the main validation function
__all__ = [
    "validate_turnstile",
    "SiteVerifyRequest",
    "SiteVerifyResponse",
    "VerificationResult",
    "SITEVERIFY_URL",
]

SITEVERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
DEFAULT_TIMEOUT_SECONDS = 5.0


class SiteVerifyRequest(pydantic.BaseModel):
    secret: str
    response: str
    remoteip: Optional[str] = None


class SiteVerifyResponse(pydantic.BaseModel):
    """Siteverify reply; only ``success`` is strict, odd optional fields read as absent."""

    model_config = pydantic.ConfigDict(populate_by_name=True, extra="allow")

    success: bool
    challenge_ts: Optional[str] = None
    hostname: Optional[str] = None
    error_codes: list[str] = pydantic.Field(alias="error-codes", default_factory=list)
    action: Optional[str] = None
    cdata: Optional[str] = None
    score: Optional[float] = None

    @pydantic.field_validator(
        "challenge_ts", "hostname", "action", "cdata", mode="before"
    )
    @classmethod
    def _string_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @pydantic.field_validator("error_codes", mode="before")
    @classmethod
    def _codes_list(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(code) for code in value]

    @pydantic.field_validator("score", mode="before")
    @classmethod
    def _numeric_score(cls, value: Any) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value


class VerificationResult(pydantic.BaseModel):
    success: bool
    details: Optional[SiteVerifyResponse] = None


async def validate_turnstile(
    turnstile_response: str,
    secret: str,
    user_ip: Optional[str] = None,
    *,
    url: str = SITEVERIFY_URL,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> VerificationResult:
    """Validate a Turnstile captcha token.

    Any failure (transport error, timeout, non-2xx status, unparsable body or a
    falsy ``success`` flag) is reported as ``success=False``; nothing is raised.

    Args:
        turnstile_response: The Turnstile response token from the client
        secret: Turnstile secret key
        user_ip: Optional IP address of the user ("unknown" is not sent)
        url: Siteverify endpoint
        timeout: Seconds to wait for the verification service

    Returns:
        VerificationResult with the parsed siteverify response on success
    """
    if not turnstile_response:
        return VerificationResult(success=False)

    remoteip = user_ip if user_ip and user_ip != "unknown" else None
    model = SiteVerifyRequest(
        secret=secret, response=turnstile_response, remoteip=remoteip
    )

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(url, data=model.model_dump(exclude_none=True))
    except httpx.TimeoutException:
        logger.warning("Turnstile verification timed out", extra={"timeout": timeout})
        return VerificationResult(success=False)
    except httpx.HTTPError as x:
        logger.warning("Turnstile verification request failed", extra={"error": str(x)})
        return VerificationResult(success=False)

    if not resp.is_success:
        logger.warning(
            "Turnstile verification returned failure status",
            extra={"status_code": resp.status_code},
        )
        return VerificationResult(success=False)

    try:
        site_response = SiteVerifyResponse.model_validate(resp.json())
    except (ValueError, pydantic.ValidationError) as x:
        logger.warning(
            "Turnstile verification response could not be parsed",
            extra={"error": str(x)},
        )
        return VerificationResult(success=False)

    if not site_response.success:
        logger.info(
            "Turnstile token rejected",
            extra={"error_codes": site_response.error_codes},
        )
        return VerificationResult(success=False)

    return VerificationResult(success=True, details=site_response)
