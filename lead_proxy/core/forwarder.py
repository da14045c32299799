"""
Upstream webhook client.
Relays an accepted submission to the workflow webhook and translates failures
into client-facing messages.
"""

from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from lead_proxy.config import logger

__all__ = ["ForwardResult", "forward_submission", "DEFAULT_UPSTREAM_MESSAGE"]

DEFAULT_UPSTREAM_MESSAGE = "Submission failed upstream"


@dataclass
class ForwardResult:
    ok: bool
    status_code: int
    message: str = ""


def _upstream_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return DEFAULT_UPSTREAM_MESSAGE

    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message

    return DEFAULT_UPSTREAM_MESSAGE


async def forward_submission(
    url: str, payload: Mapping[str, Any], timeout: float = 10.0
) -> ForwardResult:
    """
    POST the enriched payload to the upstream webhook exactly once.

    Args:
        url: Upstream webhook URL
        payload: JSON-serialisable submission
        timeout: Seconds to wait for the upstream response

    Returns:
        ForwardResult; ``ok`` is False on transport errors, timeouts and
        non-2xx responses, with the message to show the client
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(url, json=dict(payload))
    except httpx.TimeoutException:
        logger.warning("Upstream webhook timed out", extra={"timeout": timeout})
        return ForwardResult(ok=False, status_code=0, message=DEFAULT_UPSTREAM_MESSAGE)
    except httpx.HTTPError as exc:
        logger.warning("Upstream webhook request failed", extra={"error": str(exc)})
        return ForwardResult(ok=False, status_code=0, message=DEFAULT_UPSTREAM_MESSAGE)

    if not resp.is_success:
        message = _upstream_message(resp)
        logger.warning(
            "Upstream webhook rejected submission",
            extra={"status_code": resp.status_code, "upstream_message": message},
        )
        return ForwardResult(ok=False, status_code=resp.status_code, message=message)

    logger.info("Submission forwarded", extra={"status_code": resp.status_code})
    return ForwardResult(ok=True, status_code=resp.status_code)
