"""Deliverable deadline sweep.

Sends due-soon reminders and fails overdue deliverables. Meant to be run from
cron or any external scheduler:

    python -m barter_engine.jobs.deadline_sweep
"""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from barter_engine import database
from barter_engine.integrations import NotificationSink, OutboxNotificationSink
from barter_engine.services.deliverable_review import fail_overdue_deliverables, send_due_reminders
from barter_engine.utils import get_logger, log_business_event, setup_logging
from barter_engine.utils.time import utc_now

logger = get_logger(__name__)


@dataclass(slots=True)
class DeadlineSweepResult:
    reminded: int = 0
    failed: int = 0
    strikes_issued: int = 0


def run_deadline_sweep(
    session: Session,
    notifier: Optional[NotificationSink] = None,
    now: Optional[datetime] = None,
) -> DeadlineSweepResult:
    now = now or utc_now()
    reminded = send_due_reminders(session, notifier=notifier, now=now)
    failures = fail_overdue_deliverables(session, notifier=notifier, now=now)
    result = DeadlineSweepResult(
        reminded=reminded,
        failed=len(failures),
        strikes_issued=sum(1 for f in failures if f.strike_issued),
    )
    log_business_event(event_type="deadline_sweep_completed", details=asdict(result))
    return result


def main() -> DeadlineSweepResult:
    session = database.SessionLocal()
    try:
        return run_deadline_sweep(session, OutboxNotificationSink())
    except Exception as e:
        logger.error("Deadline sweep failed", error=str(e), exc_info=True)
        session.rollback()
        raise
    finally:
        session.close()


__all__ = ["DeadlineSweepResult", "run_deadline_sweep", "main"]


if __name__ == "__main__":
    setup_logging(log_level=os.getenv("LOG_LEVEL", "INFO"), log_file=os.getenv("LOG_FILE"))
    outcome = main()
    logger.info("Deadline sweep finished", **asdict(outcome))

