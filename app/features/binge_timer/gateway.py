"""
Persistence gateway for the binge-free timer.

The state machine only talks to the PersistenceGateway contract. Writes
return PersistenceResult values so a store outage never interrupts a local
transition; fetch raises because the caller must decide what to trust.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError
from supabase import Client  # type: ignore

from app import config
from app.infra.supabase import get_supabase_client
from app.infra.supabase.repositories.binge_free_periods import BingeFreePeriodRepository
from app.infra.supabase.repositories.timer_records import TimerRecordRepository
from app.models.binge_free_period import BingeFreePeriodCreate
from app.models.timer_record import TimerRecord

from .domain import PersistenceOperation, PersistenceResult
from .errors import MalformedRecord, NotAuthenticated, PersistenceUnavailable

logger = logging.getLogger(__name__)


class PersistenceGateway(ABC):
    """Durable storage for one user's timer record and periods"""

    user_id: str

    @abstractmethod
    async def save_start(self, start_time: datetime) -> PersistenceResult:
        """Upsert {timerStartTime: start_time, isTimerRunning: true}"""

    @abstractmethod
    async def save_stop(self, elapsed: float) -> PersistenceResult:
        """Upsert {isTimerRunning: false, elapsedTimeAtStop: elapsed, timerStartTime: null}"""

    @abstractmethod
    async def fetch(self) -> Optional[TimerRecord]:
        """Point-in-time read of the record, None when the user has none"""

    @abstractmethod
    async def append_period(self, period: BingeFreePeriodCreate) -> PersistenceResult:
        """Append-only insert of a completed period"""


class SupabaseTimerGateway(PersistenceGateway):
    """Gateway backed by the Supabase timer and period tables"""

    def __init__(
        self,
        user_id: Optional[str],
        records: TimerRecordRepository,
        periods: BingeFreePeriodRepository,
    ):
        if not user_id:
            raise NotAuthenticated("A user id is required to access the timer store")
        self.user_id = user_id
        self._records = records
        self._periods = periods

    async def save_start(self, start_time: datetime) -> PersistenceResult:
        try:
            await self._records.upsert_started(self.user_id, start_time)
            logger.debug(f"Saved timer start {start_time.isoformat()} for user {self.user_id}")
            return PersistenceResult.ok(PersistenceOperation.SAVE_START)
        except Exception as e:
            logger.error(f"Error saving timer start for user {self.user_id}: {e}")
            return PersistenceResult.failed(PersistenceOperation.SAVE_START, str(e))

    async def save_stop(self, elapsed: float) -> PersistenceResult:
        try:
            await self._records.upsert_stopped(self.user_id, elapsed)
            logger.debug(f"Saved timer stop ({elapsed:.2f}s) for user {self.user_id}")
            return PersistenceResult.ok(PersistenceOperation.SAVE_STOP)
        except Exception as e:
            logger.error(f"Error saving timer stop for user {self.user_id}: {e}")
            return PersistenceResult.failed(PersistenceOperation.SAVE_STOP, str(e))

    async def fetch(self) -> Optional[TimerRecord]:
        try:
            return await self._records.find_by_user(self.user_id)
        except ValidationError as e:
            logger.error(f"Timer record for user {self.user_id} failed validation: {e}")
            raise MalformedRecord(f"Timer record for user {self.user_id} is malformed")
        except Exception as e:
            logger.error(f"Error fetching timer record for user {self.user_id}: {e}")
            raise PersistenceUnavailable(f"Failed to fetch timer record: {e}")

    async def append_period(self, period: BingeFreePeriodCreate) -> PersistenceResult:
        if period.user_id != self.user_id:
            return PersistenceResult.failed(
                PersistenceOperation.APPEND_PERIOD,
                f"Period belongs to user {period.user_id}, not {self.user_id}",
            )
        try:
            stored = await self._periods.append(period)
            if stored is None:
                logger.info(f"Period {period.id} already stored for user {self.user_id}, insert ignored")
            return PersistenceResult.ok(PersistenceOperation.APPEND_PERIOD)
        except Exception as e:
            logger.error(f"Error appending period {period.id} for user {self.user_id}: {e}")
            return PersistenceResult.failed(PersistenceOperation.APPEND_PERIOD, str(e))


class RetryingGateway(PersistenceGateway):
    """
    Bounded exponential backoff with jitter around another gateway.

    Only the failing call is repeated: a failed append_period never replays
    an earlier save_stop. Period inserts are keyed by a client-generated id,
    so a retried append cannot create a second period. MalformedRecord is
    never retried.
    """

    def __init__(
        self,
        inner: PersistenceGateway,
        retries: int = 3,
        base_delay_ms: int = 200,
        max_delay_ms: int = 2000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.user_id = inner.user_id
        self._inner = inner
        self._retries = max(0, retries)
        self._base_delay_ms = base_delay_ms
        self._max_delay_ms = max_delay_ms
        self._sleep = sleep

    def _delay_seconds(self, attempt: int) -> float:
        delay = min(self._max_delay_ms, self._base_delay_ms * (2 ** (attempt - 1)))
        # jitter
        delay = delay * (0.8 + random.random() * 0.4)
        return delay / 1000.0

    async def _write(self, call: Callable[[], Awaitable[PersistenceResult]]) -> PersistenceResult:
        attempt = 0
        while True:
            result = await call()
            attempt += 1
            if result.success or attempt > self._retries:
                return result.model_copy(update={"attempts": attempt})
            logger.warning(f"{result.operation.value} failed (attempt {attempt}), retrying: {result.error}")
            await self._sleep(self._delay_seconds(attempt))

    async def save_start(self, start_time: datetime) -> PersistenceResult:
        return await self._write(lambda: self._inner.save_start(start_time))

    async def save_stop(self, elapsed: float) -> PersistenceResult:
        return await self._write(lambda: self._inner.save_stop(elapsed))

    async def append_period(self, period: BingeFreePeriodCreate) -> PersistenceResult:
        return await self._write(lambda: self._inner.append_period(period))

    async def fetch(self) -> Optional[TimerRecord]:
        attempt = 0
        while True:
            try:
                return await self._inner.fetch()
            except PersistenceUnavailable as e:
                attempt += 1
                if attempt > self._retries:
                    raise
                logger.warning(f"fetch failed (attempt {attempt}), retrying: {e}")
                await self._sleep(self._delay_seconds(attempt))


def create_gateway(user_id: Optional[str], client: Optional[Client] = None) -> PersistenceGateway:
    """
    Build the gateway for a user from configuration.

    Wraps the Supabase gateway in RetryingGateway when
    PERSISTENCE_RETRY_ATTEMPTS is positive.
    """
    if not user_id:
        raise NotAuthenticated("A user id is required to access the timer store")

    if client is None:
        try:
            client = get_supabase_client()
        except ValueError as e:
            raise PersistenceUnavailable(str(e))

    gateway: PersistenceGateway = SupabaseTimerGateway(
        user_id,
        TimerRecordRepository(client),
        BingeFreePeriodRepository(client),
    )

    if config.PERSISTENCE_RETRY_ATTEMPTS > 0:
        gateway = RetryingGateway(
            gateway,
            retries=config.PERSISTENCE_RETRY_ATTEMPTS,
            base_delay_ms=config.PERSISTENCE_RETRY_BASE_DELAY_MS,
            max_delay_ms=config.PERSISTENCE_RETRY_MAX_DELAY_MS,
        )

    return gateway
