"""
Expiration Notifier: the daily "your food is about to go off" pass.

For every item that expires within the threshold window, work out how many days
are left, and if that is exactly one of the threshold offsets, send the matching
push notification once. "Once" is guaranteed by the notification log, not by
this class: two runs may race each other, and only one of them can ever
record a given (item, kind) pair.

A run never aborts because of a single item. Dispatch failures are left
unlogged so the next run retries them; only a failure to load the item list
stops the run.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from foodtracker.errors import NotificationRunError
from foodtracker.services.item_store import ItemStore
from foodtracker.services.notification_log import LogResult, NotificationLog
from foodtracker.services.push import DispatchResult, PushDispatcher
from foodtracker.utils.dates import days_until, notification_tz, to_local_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Threshold:
    offset: int
    kind: str
    title: str
    body: str

    def render(self, item_name: str) -> tuple[str, str]:
        return self.title, self.body.format(name=item_name)


# ── Threshold table (offset in days -> notification) ────────────────

EXPIRATION_THRESHOLDS: tuple[Threshold, ...] = (
    Threshold(3, "three_day", "Food Expiring Soon", "{name} expires in 3 days."),
    Threshold(1, "one_day", "Food Expiring Tomorrow", "{name} expires tomorrow. Plan to use it soon!"),
    Threshold(0, "expiry_day", "Food Expiring Today!", "{name} expires today. Use it before it goes bad!"),
)


@dataclass
class ItemFailure:
    item_id: str
    reason: str


@dataclass
class RunSummary:
    run_date: date
    eligible: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[ItemFailure] = field(default_factory=list)

    def add_failure(self, item_id, reason: str) -> None:
        self.failed += 1
        self.failures.append(ItemFailure(item_id=str(item_id), reason=reason))

    def as_dict(self) -> dict:
        return {
            "run_date": self.run_date.isoformat(),
            "eligible": self.eligible,
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
            "failures": [{"item_id": f.item_id, "reason": f.reason} for f in self.failures],
        }


@dataclass
class _Pending:
    item_id: UUID
    item_name: str
    address: str
    threshold: Threshold


class ExpirationNotifier:
    def __init__(
        self,
        items: ItemStore,
        log: NotificationLog,
        dispatcher: PushDispatcher,
        thresholds: tuple[Threshold, ...] = EXPIRATION_THRESHOLDS,
        clock: Callable[[], datetime] | None = None,
        tz: tzinfo | None = None,
        concurrency: int = 5,
    ):
        if not thresholds:
            raise ValueError("At least one threshold is required")
        self.items = items
        self.log = log
        self.dispatcher = dispatcher
        self.tz = tz or notification_tz()
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.concurrency = max(1, concurrency)
        self.thresholds = {t.offset: t for t in thresholds}
        if len(self.thresholds) != len(thresholds):
            raise ValueError("Threshold offsets must be unique")

    @property
    def window_days(self) -> int:
        return max(self.thresholds)

    def threshold_for(self, offset: int) -> Threshold | None:
        """Exact-day match only: offset 2 is not 'within' the 3-day threshold."""
        return self.thresholds.get(offset)

    async def run(self, recipient_id: str | None = None) -> RunSummary:
        today = to_local_date(self.clock(), self.tz)
        summary = RunSummary(run_date=today)

        try:
            candidates = self.items.find_eligible_items(today, self.window_days, recipient_id)
        except SQLAlchemyError as e:
            logger.error(f"Expiration check for {today} could not load items: {e}")
            raise NotificationRunError("Could not load items for the expiration check") from e

        summary.eligible = len(candidates)
        pending = self._select_pending(candidates, today, summary)

        for start in range(0, len(pending), self.concurrency):
            batch = self._still_present(pending[start:start + self.concurrency], summary)
            results = await asyncio.gather(*(self._send(p) for p in batch))
            for p, result in zip(batch, results):
                self._settle(p, result, summary)

        logger.info(
            f"Expiration check for {today}: {summary.eligible} eligible, "
            f"{summary.sent} sent, {summary.skipped} skipped, {summary.failed} failed"
        )
        return summary

    def _select_pending(self, candidates, today: date, summary: RunSummary) -> list[_Pending]:
        pending = []
        for item, address in candidates:
            try:
                offset = days_until(item.expiration_date, today, self.tz)
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping item {item.id}: unusable expiration date {item.expiration_date!r} ({e})")
                summary.add_failure(item.id, "invalid expiration date")
                continue

            threshold = self.threshold_for(offset)
            if threshold is None:
                logger.debug(f"Item {item.id} is {offset} days out, no threshold today")
                summary.skipped += 1
                continue

            try:
                already_sent = self.log.exists(item.id, threshold.kind)
            except SQLAlchemyError as e:
                logger.error(f"Could not check notification log for item {item.id}: {e}")
                summary.add_failure(item.id, "notification log unavailable")
                continue

            if already_sent:
                logger.debug(f"Item {item.id} already notified for {threshold.kind}")
                summary.skipped += 1
                continue

            pending.append(_Pending(item_id=item.id, item_name=item.name, address=address, threshold=threshold))
        return pending

    def _still_present(self, batch: list[_Pending], summary: RunSummary) -> list[_Pending]:
        """Drop items that were deleted after they were selected."""
        try:
            live = self.items.existing_item_ids([p.item_id for p in batch])
        except SQLAlchemyError as e:
            logger.error(f"Could not re-check {len(batch)} items before dispatch: {e}")
            for p in batch:
                summary.add_failure(p.item_id, "item store unavailable")
            return []

        present = []
        for p in batch:
            if p.item_id in live:
                present.append(p)
            else:
                logger.info(f"Item {p.item_id} was deleted during the run, not notifying")
                summary.skipped += 1
        return present

    async def _send(self, p: _Pending) -> DispatchResult:
        title, body = p.threshold.render(p.item_name)
        metadata = {"foodItemId": str(p.item_id), "type": p.threshold.kind}
        try:
            return await self.dispatcher.send(p.address, title, body, metadata)
        except Exception as e:
            logger.exception(f"Dispatcher raised for item {p.item_id}")
            return DispatchResult(ok=False, reason=f"dispatcher error: {e.__class__.__name__}")

    def _settle(self, p: _Pending, result: DispatchResult, summary: RunSummary) -> None:
        item_id, kind = p.item_id, p.threshold.kind

        if not result.ok:
            logger.warning(f"Push for item {item_id} ({kind}) failed: {result.reason}")
            summary.add_failure(item_id, result.reason or "dispatch failed")
            return

        try:
            outcome = self.log.record(item_id, kind)
        except SQLAlchemyError as e:
            logger.error(f"Sent {kind} for item {item_id} but could not record it: {e}")
            summary.add_failure(item_id, "sent but not recorded")
            return

        if outcome is LogResult.ALREADY_EXISTS:
            logger.info(f"Item {item_id} ({kind}) was recorded by a concurrent run")
        summary.sent += 1
        logger.info(f"Sent {kind} notification for item {item_id}")
