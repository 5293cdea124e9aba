"""Health check and monitoring endpoints"""

from fastapi import APIRouter, Depends

from app.features.binge_timer.api import get_timer_registry
from app.features.binge_timer.registry import TimerRegistry

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/timers")
async def get_timer_health(registry: TimerRegistry = Depends(get_timer_registry)):
    """
    Get timer registry statistics.

    Returns how many per-user timers are loaded in this process.
    """
    return {
        "status": "healthy",
        "active_timers": len(registry),
    }


@router.get("/")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": "binge-free-timer",
    }
