"""Derives timer state from the persisted record"""
import logging
from typing import Optional

from app.models.timer_record import TimerRecord

from .clock import Clock, DEFAULT_CLOCK, seconds_between
from .domain import IdleState, Reconciliation, RunningState
from .errors import MalformedRecord
from .gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Rebuilds in-memory timer state from the durable record.

    A running interval's elapsed time is always recomputed as now minus the
    stored start time, however long the process was suspended or dead. An
    idle record's stored duration is trusted verbatim.
    """

    def __init__(self, gateway: PersistenceGateway, clock: Clock = DEFAULT_CLOCK):
        self._gateway = gateway
        self._clock = clock

    async def reconcile(self) -> Reconciliation:
        """
        Read the record and derive (state, elapsed).

        Raises:
            PersistenceUnavailable: If the store cannot be read
            MalformedRecord: If the record claims to run without a start time
        """
        record = await self._gateway.fetch()
        result = self.derive(record)
        logger.info(
            f"Reconciled timer for user {self._gateway.user_id}: "
            f"{result.state.status.value}, elapsed {result.elapsed:.2f}s"
        )
        return result

    def derive(self, record: Optional[TimerRecord]) -> Reconciliation:
        """Pure mapping from a fetched record to state at the clock's now"""
        if record is None:
            return Reconciliation(state=IdleState(), elapsed=0.0)

        if not record.is_timer_running:
            elapsed = record.elapsed_time_at_stop or 0.0
            return Reconciliation(state=IdleState(elapsed_at_stop=elapsed), elapsed=elapsed)

        if record.timer_start_time is None:
            raise MalformedRecord(
                f"Timer record for user {record.user_id} is running without a start time"
            )

        elapsed = seconds_between(record.timer_start_time, self._clock.now())
        if elapsed < 0:
            logger.warning(
                f"Stored start time for user {record.user_id} is {-elapsed:.2f}s in the future, "
                f"treating elapsed as 0"
            )
            elapsed = 0.0

        return Reconciliation(state=RunningState(start_time=record.timer_start_time), elapsed=elapsed)
