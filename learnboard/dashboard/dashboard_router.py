import logging
from typing import Optional

from fastapi import APIRouter, Depends

from learnboard.auth.auth_guard import get_current_identity, get_optional_session
from learnboard.auth.session_service import IdentityContext, IssuedSession
from learnboard.core.config import Config
from learnboard.core.dependencies import get_config, get_dashboard_service
from learnboard.core.errors import AuthenticationFailed, Forbidden
from learnboard.dashboard.dashboard_schemas import (
    DashboardRequest,
    DashboardResponse,
    ResultCreate,
    WeakTopicsUpdate,
)
from learnboard.dashboard.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.post("", response_model=DashboardResponse)
async def fetch_dashboard(
    data: DashboardRequest,
    session: Optional[IssuedSession] = Depends(get_optional_session),
    config: Config = Depends(get_config),
    service: DashboardService = Depends(get_dashboard_service),
):
    """
    Dashboard for the email in the body

    The email is taken from the request as-is. With DASHBOARD_REQUIRE_SESSION
    enabled it must also match the caller's session.
    """
    logger.info("Dashboard request for email: %s", data.email)

    if config.DASHBOARD_REQUIRE_SESSION:
        if session is None:
            raise AuthenticationFailed("Missing or invalid session token")
        if session.identity.email != data.email:
            raise Forbidden("Session does not match the requested email")

    return await service.get_dashboard(data.email)


@router.post("/results", response_model=DashboardResponse)
async def record_result(
    data: ResultCreate,
    identity: IdentityContext = Depends(get_current_identity),
    service: DashboardService = Depends(get_dashboard_service),
):
    return await service.record_result(identity.email, data.score)


@router.put("/weak-topics", response_model=DashboardResponse)
async def update_weak_topics(
    data: WeakTopicsUpdate,
    identity: IdentityContext = Depends(get_current_identity),
    service: DashboardService = Depends(get_dashboard_service),
):
    return await service.set_weak_topics(identity.email, data.weakTopics)
