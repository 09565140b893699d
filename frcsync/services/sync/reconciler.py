"""Event reconciliation (create-or-update by natural key).

For each freshly fetched event the reconciler looks up the stored event with
the same ``(event_code, season_year)``; a match gets every mutable field
overwritten, otherwise the fresh event is inserted. Both paths stamp
``last_synced``.

Each record is its own unit of work: a repository error on one event is
logged with its code and the loop moves on to the next. There is no
transaction spanning the batch.

This module is synchronous; the orchestrator runs it in a worker thread.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from frcsync.core.metrics import frc_events_reconciled_total
from frcsync.models.models import Event
from frcsync.repositories.event_repository import EventRepository
from frcsync.utils.timezone import utcnow

logger = logging.getLogger(__name__)

# Every attribute a later fetch may change. The natural key, id and audit
# timestamps are never copied.
MUTABLE_FIELDS = (
    "name",
    "event_type",
    "start_date",
    "end_date",
    "location",
    "venue",
    "city",
    "state_province",
    "country",
    "website",
    "live_stream_url",
    "registration_open",
    "registration_close",
    "team_count",
    "is_official",
    "is_public",
)


@dataclass
class ReconcileResult:
    """Outcome counts of one reconcile() call."""
    created: int = 0
    updated: int = 0
    failed: int = 0
    failed_codes: List[str] = field(default_factory=list)
    stopped: bool = False

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.failed

    def to_dict(self) -> dict:
        return {
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "failed_codes": list(self.failed_codes),
            "stopped": self.stopped,
        }


def copy_mutable_fields(source: Event, target: Event) -> None:
    """Overwrite every mutable attribute of ``target`` with ``source``'s."""
    for name in MUTABLE_FIELDS:
        setattr(target, name, getattr(source, name))


class EventReconciler:
    """Upserts batches of events into an EventRepository."""

    def __init__(
        self,
        repository: EventRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the reconciler.

        Args:
            repository: Event store
            clock: Source of "now" for last_synced (naive UTC)
        """
        self.repository = repository
        self.clock = clock

    def reconcile_one(self, fresh: Event) -> str:
        """
        Upsert a single event.

        Returns:
            "created" or "updated"

        Raises:
            Exception: Whatever the repository raised
        """
        existing = self.repository.find_by_natural_key(*fresh.natural_key)

        if existing is not None:
            copy_mutable_fields(fresh, existing)
            existing.last_synced = self.clock()
            self.repository.save(existing)
            return "updated"

        fresh.last_synced = self.clock()
        self.repository.save(fresh)
        return "created"

    def reconcile(
        self,
        events: Iterable[Event],
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> ReconcileResult:
        """
        Upsert a batch of events, isolating failures per record.

        Args:
            events: Freshly fetched events
            should_stop: Checked before each record; when it returns True the
                batch ends after the record already in progress

        Returns:
            ReconcileResult with created/updated/failed counts
        """
        result = ReconcileResult()

        for event in events:
            if should_stop is not None and should_stop():
                logger.info(
                    f"Reconciliation stopped after {result.processed} events",
                    extra={"event": "sync_cancelled", "processed": result.processed}
                )
                result.stopped = True
                break

            try:
                action = self.reconcile_one(event)
            except Exception as e:
                result.failed += 1
                result.failed_codes.append(event.event_code)
                frc_events_reconciled_total.labels(action="failed").inc()
                logger.error(
                    f"Failed to persist event {event.event_code}/{event.season_year}: {e}",
                    extra={
                        "event": "event_persist_failed",
                        "event_code": event.event_code,
                        "season_year": event.season_year,
                    },
                    exc_info=True
                )
                continue

            frc_events_reconciled_total.labels(action=action).inc()
            if action == "created":
                result.created += 1
            else:
                result.updated += 1

        logger.info(
            f"Reconciled events: {result.created} created, {result.updated} updated, "
            f"{result.failed} failed"
        )
        return result
