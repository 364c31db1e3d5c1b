from __future__ import annotations
from pydantic import BaseModel
from typing import Dict

from yearbook.core.config import settings


class DependencyStatus(BaseModel):
    status: str
    details: str | None = None

class ReadinessResponse(BaseModel):
    status: str
    dependencies: Dict[str, DependencyStatus]

def check_schools_index_status() -> DependencyStatus:
    try:
        from yearbook.services.school_loader import get_schools_index
        index = get_schools_index()
        if not index.is_empty():
            return DependencyStatus(status="ok", details=f"School index loaded with {index.height} schools")
        return DependencyStatus(status="error", details="School index is empty")
    except Exception as e:
        return DependencyStatus(status="error", details=str(e))

def check_exchange_rate_status() -> DependencyStatus:
    from yearbook.reliability.circuit_breaker import exchange_rate_circuit_breaker
    state = exchange_rate_circuit_breaker.state.value
    details = f"Fallback USD->NGN rate: {settings.FALLBACK_NGN_RATE}"
    return DependencyStatus(status=state, details=details)

def check_email_status() -> DependencyStatus:
    if not settings.EMAIL_ENABLED:
        return DependencyStatus(status="disabled", details="Emails are logged, not delivered")
    if settings.RESEND_API_KEY and settings.RESEND_FROM_EMAIL:
        return DependencyStatus(status="ok", details=f"Resend sender: {settings.RESEND_FROM_EMAIL}")
    return DependencyStatus(status="error", details="Resend credentials are missing")

def run_readiness_check() -> ReadinessResponse:
    schools_status = check_schools_index_status()
    email_status = check_email_status()

    total_status = "ready"
    if schools_status.status == "error" or email_status.status == "error":
        total_status = "not_ready"

    return ReadinessResponse(
        status=total_status,
        dependencies={
            "schools": schools_status,
            "exchange_rate": check_exchange_rate_status(),
            "email": email_status,
        }
    )
