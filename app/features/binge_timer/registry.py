"""Per-user timer services with an explicit lifecycle"""
import asyncio
import logging
from typing import Callable, Dict, Optional

from app import config

from .clock import Clock, DEFAULT_CLOCK
from .errors import NotAuthenticated
from .gateway import PersistenceGateway, create_gateway
from .scheduler import AsyncioScheduler, Scheduler
from .service import BingeFreeTimer
from .ticker import DisplayTicker

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[str], PersistenceGateway]


class TimerRegistry:
    """
    Owns one BingeFreeTimer per user.

    A timer is created on first use, reconciled until a read succeeds, then
    shared by every request for that user until shutdown(). Created in the
    application lifespan and handed to routes as a dependency.
    """

    def __init__(
        self,
        gateway_factory: GatewayFactory = create_gateway,
        clock: Clock = DEFAULT_CLOCK,
        scheduler: Optional[Scheduler] = None,
        tick_interval: float = config.TIMER_TICK_INTERVAL_SECONDS,
    ):
        self._gateway_factory = gateway_factory
        self._clock = clock
        self._scheduler = scheduler or AsyncioScheduler()
        self._tick_interval = tick_interval
        self._timers: Dict[str, BingeFreeTimer] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._timers)

    def _build(self, user_id: str) -> BingeFreeTimer:
        gateway = self._gateway_factory(user_id)
        ticker = DisplayTicker(self._scheduler, self._clock, self._tick_interval)
        return BingeFreeTimer(gateway, ticker, self._clock)

    async def get(self, user_id: Optional[str]) -> BingeFreeTimer:
        """
        Return the user's timer, creating and reconciling it if needed.

        Reconciliation runs under the timer's own lock, outside the registry
        lock. A timer whose first read failed is reconciled again on the next
        get().
        """
        if not user_id:
            raise NotAuthenticated("No current user")

        async with self._lock:
            timer = self._timers.get(user_id)
            if timer is None:
                timer = self._build(user_id)
                self._timers[user_id] = timer
                logger.info(f"Created timer for user {user_id}")

        if not timer.initialized:
            await timer.init()
        return timer

    async def release(self, user_id: str) -> None:
        """Shut down and forget one user's timer"""
        async with self._lock:
            timer = self._timers.pop(user_id, None)
        if timer is not None:
            await timer.shutdown()

    async def shutdown(self) -> None:
        """Shut down every timer"""
        async with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            await timer.shutdown()
        logger.info(f"Timer registry shut down ({len(timers)} timers)")
