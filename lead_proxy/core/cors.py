"""
Origin gate for the submission endpoint.
Decides whether a declared Origin may be served and builds the CORS headers
attached to every response for that request.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

__all__ = ["CorsDecision", "parse_allowed_origins", "resolve_cors", "WILDCARD"]

WILDCARD = "*"

ALLOW_METHODS = "POST, OPTIONS"
ALLOW_HEADERS = "Content-Type"


@dataclass(frozen=True)
class CorsDecision:
    allowed: bool
    headers: Dict[str, str] = field(default_factory=dict)


def parse_allowed_origins(raw: Optional[str]) -> List[str]:
    """Split a comma-separated allow-list, dropping blanks and trailing slashes."""
    if not raw:
        return []
    return [item.strip().rstrip("/") for item in raw.split(",") if item.strip()]


def resolve_cors(
    origin: Optional[str], allowed_origins: List[str], strict: bool = False
) -> CorsDecision:
    """
    Compute the CORS decision for a request.

    An empty allow-list is permissive unless ``strict`` is set.

    Args:
        origin: Value of the request's Origin header, if any
        allowed_origins: Parsed allow-list (exact origins or the wildcard)
        strict: Treat an empty allow-list as "deny everything"

    Returns:
        CorsDecision with the allow flag and the response headers
    """
    origin = (origin or "").strip()
    wildcard = WILDCARD in allowed_origins
    open_list = not allowed_origins and not strict

    allowed = wildcard or open_list or (bool(origin) and origin in allowed_origins)

    if allowed and origin:
        allow_origin = origin
    elif allowed and (wildcard or open_list):
        allow_origin = WILDCARD
    elif allowed_origins:
        # never grant a disallowed caller its own origin
        allow_origin = allowed_origins[0]
    else:
        allow_origin = "null"

    headers = {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Vary": "Origin",
    }
    return CorsDecision(allowed=allowed, headers=headers)
