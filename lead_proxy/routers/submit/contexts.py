"""Lightweight dataclasses shared across submission helpers."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from lead_proxy.core.validate_turnstile import VerificationResult


@dataclass(frozen=True)
class RequestContext:
    method: str
    origin: str
    client_ip: str
    user_agent: str
    referer: str
    path: str


@dataclass
class SecurityContext:
    payload: Dict[str, Any]
    is_bot: bool = False
    verification: Optional[VerificationResult] = None
