"""
Follow-up Notification Scheduler

Schedules one delayed follow-up reminder per patient on the running
asyncio loop. Scheduling a patient again replaces its pending reminder.

The delivery channel is a callback; the default one logs the reminder.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from dhbnn.core.clinical.patient import utcnow
from dhbnn.utils import get_logger, SchedulingError

logger = get_logger(__name__)

NOTIFICATION_TITLE = "Suivi Patient Requis"


@dataclass(frozen=True)
class FollowUpNotification:
    patient_id: int
    title: str
    body: str
    tag: str
    url: str

    @classmethod
    def for_patient(cls, patient_id: int, patient_name: str) -> "FollowUpNotification":
        return cls(
            patient_id=patient_id,
            title=NOTIFICATION_TITLE,
            body=f"Le patient {patient_name} nécessite une évaluation de suivi de 48h.",
            tag=f"patient-follow-up-{patient_id}",
            url=f"/api/v1/patients/{patient_id}",
        )


@dataclass
class _Pending:
    notification: FollowUpNotification
    due_at: datetime
    handle: asyncio.TimerHandle


def log_notification(notification: FollowUpNotification) -> None:
    logger.info(f"{notification.title}: {notification.body} [{notification.tag}]")


class FollowUpScheduler:
    """
    In-process reminder scheduler.

    Fire-and-forget: no retry, and reminders do not survive a restart.
    """

    def __init__(self, notifier: Callable[[FollowUpNotification], None] = log_notification):
        self._notifier = notifier
        self._pending: Dict[int, _Pending] = {}
        self.delivered: List[FollowUpNotification] = []

    def schedule(
        self,
        patient_id: int,
        display_after_ms: int,
        patient_name: str = "",
    ) -> FollowUpNotification:
        """
        Show a follow-up reminder for `patient_id` after `display_after_ms`.

        Must be called from within a running event loop.
        """
        if display_after_ms < 0:
            raise SchedulingError(
                "Notification delay must be non-negative",
                details={"patient_id": patient_id, "display_after_ms": display_after_ms},
            )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise SchedulingError(
                "No running event loop to schedule the follow-up on",
                details={"patient_id": patient_id},
            ) from exc

        self.cancel(patient_id)

        notification = FollowUpNotification.for_patient(patient_id, patient_name or f"#{patient_id}")
        handle = loop.call_later(display_after_ms / 1000, self._fire, patient_id)
        self._pending[patient_id] = _Pending(
            notification=notification,
            due_at=utcnow() + timedelta(milliseconds=display_after_ms),
            handle=handle,
        )
        logger.info(
            f"Notification for patient {patient_id} scheduled in {display_after_ms / 1000:.0f} seconds."
        )
        return notification

    def cancel(self, patient_id: int) -> bool:
        pending = self._pending.pop(patient_id, None)
        if pending is None:
            return False
        pending.handle.cancel()
        logger.debug(f"Pending notification for patient {patient_id} cancelled")
        return True

    def cancel_all(self) -> None:
        for patient_id in list(self._pending):
            self.cancel(patient_id)

    def pending(self) -> Dict[int, datetime]:
        """Patient id → due time of each reminder not yet shown."""
        return {pid: p.due_at for pid, p in self._pending.items()}

    def due_at(self, patient_id: int) -> Optional[datetime]:
        pending = self._pending.get(patient_id)
        return pending.due_at if pending else None

    def _fire(self, patient_id: int) -> None:
        pending = self._pending.pop(patient_id, None)
        if pending is None:
            return
        try:
            self._notifier(pending.notification)
        except Exception as exc:
            # The loop would otherwise swallow it with a generic message
            logger.error(f"Notification for patient {patient_id} failed: {exc}", exc_info=True)
            return
        self.delivered.append(pending.notification)
        logger.info(f"Showing notification for patient {patient_id}")
