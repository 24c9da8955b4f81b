"""Usage router - daily free quota status."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_client_ip, get_daily_limiter
from api.models.responses import UsageStatus, UsageStatusResponse
from backend.limits import DailyUsageLimiter, format_reset_time

router = APIRouter(tags=["usage"])


@router.get("/usage-status", response_model=UsageStatusResponse)
def usage_status(
    request: Request,
    language: str = "en",
    daily_limiter: DailyUsageLimiter = Depends(get_daily_limiter),
):
    """Daily usage for the caller, without consuming a unit."""
    status = daily_limiter.status(get_client_ip(request))

    return UsageStatusResponse(
        data=UsageStatus(
            used=status.used,
            limit=status.limit,
            remaining=status.remaining,
            reset_time=status.reset_time,
            reset_in=format_reset_time(status.reset_time, language=language),
            should_warn=status.should_warn,
            allowed=status.allowed,
            warning_threshold=daily_limiter.warning_threshold,
        ),
        timestamp=datetime.now(timezone.utc),
    )
