"""Binge-free timer API endpoints"""

import asyncio
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from app import config
from app.infra.supabase import get_supabase_client
from app.infra.supabase.repositories.binge_free_periods import BingeFreePeriodRepository
from app.middleware.auth import get_current_user_id

from .domain import TimerSnapshot
from .errors import PersistenceUnavailable
from .registry import TimerRegistry
from .schemas import PeriodListResponse, ReconcileResponse, TransitionResponse
from .service import BingeFreeTimer

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/timer", tags=["timer"])


def get_timer_registry(request: Request) -> TimerRegistry:
    """Registry created in the application lifespan"""
    return request.app.state.timer_registry


def get_period_repository() -> BingeFreePeriodRepository:
    return BingeFreePeriodRepository(get_supabase_client())


async def get_current_timer(
    user_id: str = Depends(get_current_user_id),
    registry: TimerRegistry = Depends(get_timer_registry),
) -> BingeFreeTimer:
    """Resolve the authenticated user's timer, reconciling it on first use"""
    return await registry.get(user_id)


@router.get("", response_model=TimerSnapshot)
async def get_timer(timer: BingeFreeTimer = Depends(get_current_timer)):
    """
    Get the current timer state.

    While running, elapsed is computed from the stored start time at
    request time.
    """
    return timer.snapshot()


@router.post("/start", response_model=TransitionResponse)
async def start_timer(timer: BingeFreeTimer = Depends(get_current_timer)):
    """
    Start a binge-free interval.

    Starting while already running keeps the original start time
    (changed=false). persisted=false means the store write failed; the timer
    still runs locally.
    """
    result = await timer.start()
    return TransitionResponse.from_result(result, timer.snapshot())


@router.post("/stop", response_model=TransitionResponse)
async def stop_timer(timer: BingeFreeTimer = Depends(get_current_timer)):
    """Stop the interval without logging a period. Idempotent."""
    result = await timer.stop()
    return TransitionResponse.from_result(result, timer.snapshot())


@router.post("/log", response_model=TransitionResponse)
async def log_period(timer: BingeFreeTimer = Depends(get_current_timer)):
    """
    Stop the interval and record it as a binge-free period.

    The response carries the period and the outcome of both writes
    (save_stop, then append_period).
    """
    result = await timer.stop_and_log()
    return TransitionResponse.from_result(result, timer.snapshot())


@router.post("/reset", response_model=TransitionResponse)
async def reset_timer(timer: BingeFreeTimer = Depends(get_current_timer)):
    """Stop the timer and clear the stored duration"""
    result = await timer.reset()
    return TransitionResponse.from_result(result, timer.snapshot())


@router.post("/refresh", response_model=ReconcileResponse)
async def refresh_timer(timer: BingeFreeTimer = Depends(get_current_timer)):
    """Re-derive the timer from the persisted record (pull-to-refresh)"""
    result = await timer.reconcile()
    return ReconcileResponse.from_reconciliation(result)


@router.get("/periods", response_model=PeriodListResponse)
async def list_periods(
    limit: Optional[int] = Query(None, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    repository: BingeFreePeriodRepository = Depends(get_period_repository),
):
    """List the user's logged binge-free periods, newest first"""
    try:
        periods = await repository.find_by_user(user_id, limit=limit)
        return PeriodListResponse(periods=periods, count=len(periods))
    except Exception as e:
        logger.error(f"Error listing periods for user {user_id}: {e}")
        raise PersistenceUnavailable(f"Failed to fetch binge-free periods: {e}")


async def snapshot_stream(
    timer: BingeFreeTimer,
    request: Request,
    interval: float = config.TIMER_STREAM_INTERVAL_SECONDS,
    keepalive: float = 15.0,
) -> AsyncGenerator[str, None]:
    """
    Yield display snapshots in SSE format.

    Only the most recent snapshot is kept between events, so a slow client
    sees fewer updates rather than stale ones.
    """
    queue: asyncio.Queue = asyncio.Queue(maxsize=1)

    def on_snapshot(snapshot: TimerSnapshot) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(snapshot)

    unsubscribe = timer.ticker.subscribe(on_snapshot)
    try:
        yield f"data: {timer.snapshot().model_dump_json()}\n\n"
        while not await request.is_disconnected():
            try:
                snapshot = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"data: {snapshot.model_dump_json()}\n\n"
            await asyncio.sleep(interval)
    finally:
        unsubscribe()


@router.get("/stream")
async def stream_timer(request: Request, timer: BingeFreeTimer = Depends(get_current_timer)):
    """Stream the elapsed display as server-sent events"""
    return StreamingResponse(
        snapshot_stream(timer, request),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )
