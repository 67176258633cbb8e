"""Goal HTTP router — goal board, set/edit/dismiss, video observations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from haddaf.auth import verify_api_key
from haddaf.goals.deps import get_goal_service
from haddaf.goals.errors import (
    DuplicateActiveGoalError,
    GoalNotFoundError,
    InvalidTransitionError,
    OutOfRangeError,
    StorageError,
)
from haddaf.goals.metrics import list_metrics
from haddaf.goals.models import (
    EvaluationResult,
    GoalBoard,
    GoalCreate,
    GoalTargetUpdate,
    MetricInfo,
    PerformanceObservation,
    PlayerGoal,
)
from haddaf.goals.service import GoalService

router = APIRouter(prefix="/goals", tags=["goals"])

# Kept outside /goals so every path segment there stays free for owner ids
metrics_router = APIRouter(prefix="/metrics", tags=["goals"])


# ---------------------------------------------------------------------------
# /metrics
# ---------------------------------------------------------------------------


@metrics_router.get("", response_model=list[MetricInfo])
async def metrics_list(
    _: str = Depends(verify_api_key),
) -> list[MetricInfo]:
    return [MetricInfo(metric=m, label=m.label, icon=m.icon) for m in list_metrics()]


# ---------------------------------------------------------------------------
# /goals/{owner_id}
# ---------------------------------------------------------------------------


@router.get("/{owner_id}", response_model=GoalBoard)
async def goal_board(
    owner_id: str,
    service: GoalService = Depends(get_goal_service),
    _: str = Depends(verify_api_key),
) -> GoalBoard:
    return await service.board(owner_id)


@router.post("/{owner_id}", response_model=PlayerGoal, status_code=201)
async def set_goal(
    owner_id: str,
    payload: GoalCreate,
    service: GoalService = Depends(get_goal_service),
    _: str = Depends(verify_api_key),
) -> PlayerGoal:
    return await service.set_goal(owner_id, payload.metric, payload.target_count)


@router.patch("/{owner_id}/{goal_id}", response_model=PlayerGoal)
async def update_goal_target(
    owner_id: str,
    goal_id: str,
    payload: GoalTargetUpdate,
    service: GoalService = Depends(get_goal_service),
    _: str = Depends(verify_api_key),
) -> PlayerGoal:
    return await service.update_target(owner_id, goal_id, payload.target_count)


@router.delete("/{owner_id}/{goal_id}", status_code=204)
async def dismiss_goal(
    owner_id: str,
    goal_id: str,
    service: GoalService = Depends(get_goal_service),
    _: str = Depends(verify_api_key),
) -> Response:
    await service.dismiss_goal(owner_id, goal_id)
    return Response(status_code=204)


@router.post("/{owner_id}/observations", response_model=list[EvaluationResult])
async def record_observation(
    owner_id: str,
    observation: PerformanceObservation,
    service: GoalService = Depends(get_goal_service),
    _: str = Depends(verify_api_key),
) -> list[EvaluationResult]:
    return await service.record_performance(owner_id, observation)


# ---------------------------------------------------------------------------
# Domain error -> HTTP mapping
# ---------------------------------------------------------------------------

ERROR_STATUS: dict[type[Exception], int] = {
    OutOfRangeError: 422,
    InvalidTransitionError: 409,
    DuplicateActiveGoalError: 409,
    GoalNotFoundError: 404,
}


async def _goal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=ERROR_STATUS[type(exc)], content={"detail": str(exc)})


async def _storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": "Couldn't save your goal. Please try again."})


def register_error_handlers(app: FastAPI) -> None:
    for exc_type in ERROR_STATUS:
        app.add_exception_handler(exc_type, _goal_error_handler)
    app.add_exception_handler(StorageError, _storage_error_handler)
