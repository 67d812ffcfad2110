"""Follow-up service — automated re-engagement emails for unanswered leads.

Sends up to three follow-up emails to homeowners whose lead is still "new":
  - Stage 1: lead at least 3 days old
  - Stage 2: lead at least 7 days old, stage 1 already sent
  - Stage 3: lead at least 14 days old, stage 2 already sent; closes the lead

A lead that somebody moved out of "new" (contacted, quoted, won, lost)
is never selected again, which is how a human cancels the sequence.

The flag for a stage is set only after the email was accepted by the
relay, so a failed send is retried by the next daily run. Each stage
re-queries after the previous one commits, so a lead that is overdue for
several stages catches up within a single run.

Designed to be called once a day, either from a platform cron running
`flask send-follow-ups` ("0 10 * * *") or from `flask follow-up-worker`.
Overlapping runs are prevented by a row in job_locks.
"""

import logging
import os
import socket
import time
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError

from renovision.exceptions import EmailDeliveryError
from renovision.models.audit import AuditEvent
from renovision.models.base import utcnow
from renovision.models.job_lock import JobLock
from renovision.services import notification_service

logger = logging.getLogger(__name__)

LOCK_NAME = "follow-ups"

FOLLOW_UP_STAGES = (1, 2, 3)


def acquire_lock(session, name, ttl_minutes, now=None):
    """Try to take the named job lock. Returns True on success.

    A lock older than ttl_minutes is treated as left behind by a crashed
    run and is taken over.
    """
    now = now or utcnow()
    stale_before = now - timedelta(minutes=ttl_minutes)

    session.query(JobLock).filter(
        JobLock.name == name, JobLock.acquired_at < stale_before
    ).delete(synchronize_session=False)

    session.add(JobLock(
        name=name,
        holder=f"{socket.gethostname()}:{os.getpid()}",
        acquired_at=now,
    ))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        return False
    return True


def release_lock(session, name):
    session.rollback()
    session.query(JobLock).filter(JobLock.name == name).delete(
        synchronize_session=False
    )
    session.commit()


def _send_stage(lead_repo, lead, stage, now):
    """Send one follow-up and record it. Returns True if the flag was set."""
    company = lead.company
    notification_service.send_follow_up(lead, company, stage)

    flipped = lead_repo.mark_follow_up_sent(lead, stage, now=now)
    if flipped:
        lead_repo.session.add(AuditEvent(
            company_id=company.id,
            action="lead.follow_up_sent",
            metadata_={
                "lead_id": lead.id,
                "reference_code": lead.reference_code,
                "stage": stage,
            },
        ))
    lead_repo.session.commit()
    return flipped


def process_follow_ups(lead_repo, now=None, dry_run=False, lock_ttl_minutes=120):
    """Find eligible leads and send the next follow-up email to each.

    Args:
        lead_repo: LeadRepository.
        now: Reference time (defaults to current UTC time).
        dry_run: If True, log what would be sent but don't send or write.
        lock_ttl_minutes: Age after which a held job lock counts as stale.

    Returns:
        dict: {"sent": {1: n, 2: n, 3: n}, "failed": n, "locked": bool}
    """
    now = now or utcnow()
    session = lead_repo.session
    summary = {"sent": {stage: 0 for stage in FOLLOW_UP_STAGES}, "failed": 0, "locked": False}

    if not dry_run and not acquire_lock(session, LOCK_NAME, lock_ttl_minutes, now=now):
        logger.warning("Follow-up run skipped: another run holds the lock.")
        summary["locked"] = True
        return summary

    try:
        for stage in FOLLOW_UP_STAGES:
            leads = lead_repo.due_for_follow_up(stage, now=now)
            logger.info(f"Follow-up stage {stage}: {len(leads)} lead(s) due.")

            for lead in leads:
                reference = lead.reference_code

                if dry_run:
                    logger.info(f"[DRY RUN] Would send stage {stage} to {lead.email} ({reference})")
                    summary["sent"][stage] += 1
                    continue

                try:
                    if _send_stage(lead_repo, lead, stage, now):
                        summary["sent"][stage] += 1
                        logger.info(f"Follow-up stage {stage} sent for {reference}")
                    else:
                        logger.info(f"Follow-up stage {stage} for {reference} already recorded")
                except EmailDeliveryError as e:
                    session.rollback()
                    summary["failed"] += 1
                    logger.error(f"Follow-up stage {stage} failed for {reference}: {e}")
                except Exception as e:
                    session.rollback()
                    summary["failed"] += 1
                    logger.exception(f"Follow-up stage {stage} errored for {reference}: {e}")
    finally:
        if not dry_run:
            release_lock(session, LOCK_NAME)

    return summary


def seconds_until(hour, now=None):
    """Seconds from `now` (local time) until the next HH:00."""
    now = now or datetime.now()
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


def run_daily(run_once, hour, sleep=time.sleep):
    """Block forever, calling run_once() every day at `hour`:00 local time.

    A run that raises is logged and the loop waits for the next day.
    """
    while True:
        delay = seconds_until(hour)
        logger.info(f"Next follow-up run in {delay / 3600:.1f}h")
        sleep(delay)
        try:
            run_once()
        except Exception:
            logger.exception("Follow-up run crashed")
