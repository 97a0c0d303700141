from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import Response
from typing import Optional
from datetime import datetime, timezone

from survivor.api.schema import (
    ActivationResponse,
    BuildResponse,
    CascadeResponse,
    CompleteGameRequest,
    GenerateBracketRequest,
    StandingsResponse,
)
from survivor.bracket.builder import BracketBuilder
from survivor.core.container import ServiceContainer
from survivor.engine.cascade import CascadeEngine
from survivor.engine.scheduler import RoundScheduler
from survivor.exceptions import ConfigurationError
from survivor.standings import summarize
from survivor.utils.observability import Logger, get_metrics
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()
logger = Logger(__name__)


def verify_cron_auth(authorization: Optional[str] = Header(default=None)) -> None:
    """
    Shared-secret bearer auth for scheduler and admin calls.

    With no CRON_SECRET configured, requests are only let through in development.
    """
    from survivor.config import settings

    secret = settings.api.cron_secret
    if not secret:
        if settings.observability.environment == "development":
            logger.log_warning("cron_secret_unset", environment="development")
            return
        logger.log_error("cron_auth_rejected", reason=str(ConfigurationError("CRON_SECRET is not set")))
        raise HTTPException(status_code=401, detail="Unauthorized")

    if authorization != f"Bearer {secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/health")
def health_check():
    """
    Service health check.
    """
    state = ServiceContainer.get_store().get_scheduler_state()
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "scheduler": state.to_dict(),
    }


@router.get("/metrics")
def metrics_endpoint():
    """
    Expose Prometheus metrics.
    """
    return Response(generate_latest(get_metrics().registry), media_type=CONTENT_TYPE_LATEST)


@router.api_route(
    "/cron/process-results",
    methods=["GET", "POST"],
    response_model=CascadeResponse,
    dependencies=[Depends(verify_cron_auth)],
)
def process_results():
    """
    Run one cascade tick. Partial failures come back as 200 with `errors`.
    """
    try:
        result = CascadeEngine(ServiceContainer.get_store()).run_tick()
    except Exception as e:
        logger.log_error("process_results_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    return result.to_dict()


@router.api_route(
    "/cron/activate-rounds",
    methods=["GET", "POST"],
    response_model=ActivationResponse,
    dependencies=[Depends(verify_cron_auth)],
)
def activate_rounds(sync_deadlines: bool = False):
    """
    Activate the round whose pick deadline is near.
    """
    try:
        scheduler = RoundScheduler(ServiceContainer.get_store())
        synced = scheduler.sync_deadlines() if sync_deadlines else 0
        result = scheduler.activate_rounds()
    except Exception as e:
        logger.log_error("activate_rounds_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    return {**result.to_dict(), "deadlines_synced": synced}


@router.post(
    "/admin/generate-bracket",
    response_model=BuildResponse,
    dependencies=[Depends(verify_cron_auth)],
)
def generate_bracket(request: Optional[GenerateBracketRequest] = None):
    """
    Build (or rebuild) the 63-game bracket graph.
    """
    pairings = request.f4_pairings if request else None
    logger.log_event("api_generate_bracket_request", f4_pairings=pairings)
    result = BracketBuilder(ServiceContainer.get_store()).generate(pairings)
    return result.to_dict()


@router.post(
    "/admin/complete-game",
    response_model=CascadeResponse,
    dependencies=[Depends(verify_cron_auth)],
)
def complete_game(request: CompleteGameRequest):
    """
    Mark a single game final by hand and cascade the result.
    """
    engine = CascadeEngine(ServiceContainer.get_store())
    try:
        result = engine.apply_manual_result(
            request.game_id, request.winner_id, request.team1_score, request.team2_score
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()


@router.get("/pools/{pool_id}/standings", response_model=StandingsResponse)
def pool_standings(pool_id: int):
    summary = summarize(ServiceContainer.get_store(), pool_id)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"Pool {pool_id} not found")
    return summary
