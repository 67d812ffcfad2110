"""Tests for the follow-up scheduler.

Covers:
- Stage eligibility: age, status "new", previous stage sent
- Leads moved out of "new" are never followed up
- Stage 3 closes the lead
- A failed send leaves the flag unset so the next run retries
- An overdue lead catches up on several stages in one run
- Overlapping runs are refused by the job lock; stale locks are taken over
- Dry run sends and writes nothing
- Email rendering for each stage
- The `flask send-follow-ups` command
"""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from renovision.exceptions import EmailDeliveryError
from renovision.models.audit import AuditEvent
from renovision.models.base import utcnow
from renovision.models.job_lock import JobLock
from renovision.models.lead import Lead
from renovision.repositories import LeadRepository
from renovision.services import follow_up_service
from renovision.services.follow_up_service import process_follow_ups, seconds_until

SEND = "renovision.services.notification_service.send_email_sync"


def _run(db_session, **kwargs):
    return process_follow_ups(LeadRepository(db_session), **kwargs)


def _reload(db_session, lead_id):
    db_session.expire_all()
    return db_session.get(Lead, lead_id)


class TestEligibility:

    def test_young_lead_is_not_due(self, db_session, seed_data, make_lead):
        make_lead(seed_data["demo"], age_days=2)
        with patch(SEND) as mock_send:
            summary = _run(db_session)
        mock_send.assert_not_called()
        assert summary["sent"] == {1: 0, 2: 0, 3: 0}

    def test_day_3_sends_stage_1(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=4)
        with patch(SEND) as mock_send:
            summary = _run(db_session)

        assert summary["sent"][1] == 1
        mock_send.assert_called_once()
        kwargs = mock_send.call_args.kwargs
        assert kwargs["to"] == "jane@example.com"
        assert kwargs["template"] == "emails/follow_up_1.html"
        assert kwargs["subject"] == "Still interested in your bathroom renovation?"
        assert kwargs["reply_to"] == "demo@example.com"

        lead = _reload(db_session, lead.id)
        assert lead.follow_up_1_sent is True
        assert lead.follow_up_2_sent is False
        assert lead.status == "new"

    def test_stage_1_writes_audit_event(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=4)
        with patch(SEND):
            _run(db_session)

        event = AuditEvent.query.filter_by(action="lead.follow_up_sent").first()
        assert event.metadata_["lead_id"] == lead.id
        assert event.metadata_["stage"] == 1

    def test_day_7_needs_stage_1_first(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=8, follow_up_1_sent=True)
        with patch(SEND) as mock_send:
            summary = _run(db_session)

        assert summary["sent"] == {1: 0, 2: 1, 3: 0}
        assert mock_send.call_args.kwargs["template"] == "emails/follow_up_2.html"
        assert _reload(db_session, lead.id).follow_up_2_sent is True

    def test_day_14_sends_stage_3_and_closes(self, db_session, seed_data, make_lead):
        lead = make_lead(
            seed_data["demo"], age_days=15,
            follow_up_1_sent=True, follow_up_2_sent=True,
        )
        with patch(SEND) as mock_send:
            summary = _run(db_session)

        assert summary["sent"] == {1: 0, 2: 0, 3: 1}
        assert mock_send.call_args.kwargs["subject"] == (
            "We'll miss you — one final message from Demo Bathrooms Ltd"
        )
        lead = _reload(db_session, lead.id)
        assert lead.follow_up_3_sent is True
        assert lead.status == "closed"

    @pytest.mark.parametrize("status", ["contacted", "quoted", "won", "lost", "closed"])
    def test_non_new_leads_are_never_selected(self, status, db_session, seed_data, make_lead):
        make_lead(seed_data["demo"], age_days=20, status=status)
        with patch(SEND) as mock_send:
            _run(db_session)
        mock_send.assert_not_called()

    def test_fully_followed_up_lead_is_left_alone(self, db_session, seed_data, make_lead):
        make_lead(
            seed_data["demo"], age_days=30, follow_up_1_sent=True,
            follow_up_2_sent=True, follow_up_3_sent=True,
        )
        with patch(SEND) as mock_send:
            _run(db_session)
        mock_send.assert_not_called()

    def test_overdue_lead_gets_stages_1_and_2_in_one_run(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=10)
        with patch(SEND) as mock_send:
            summary = _run(db_session)

        assert summary["sent"] == {1: 1, 2: 1, 3: 0}
        assert [c.kwargs["template"] for c in mock_send.call_args_list] == [
            "emails/follow_up_1.html",
            "emails/follow_up_2.html",
        ]
        lead = _reload(db_session, lead.id)
        assert lead.follow_up_1_sent is True
        assert lead.follow_up_2_sent is True
        assert lead.follow_up_3_sent is False
        assert lead.status == "new"

    def test_lead_past_day_14_gets_all_stages_in_one_run(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=20)
        with patch(SEND) as mock_send:
            summary = _run(db_session)

        assert mock_send.call_count == 3
        assert summary["sent"] == {1: 1, 2: 1, 3: 1}
        lead = _reload(db_session, lead.id)
        assert lead.follow_up_3_sent is True
        assert lead.status == "closed"

    def test_failed_stage_1_holds_back_stage_2(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=10)
        with patch(SEND, side_effect=EmailDeliveryError("relay down")) as mock_send:
            summary = _run(db_session)

        assert mock_send.call_count == 1
        assert summary["failed"] == 1
        assert summary["sent"] == {1: 0, 2: 0, 3: 0}
        assert _reload(db_session, lead.id).follow_up_2_sent is False

    def test_stage_1_subject_uses_lead_prompt(self, db_session, seed_data, make_lead):
        make_lead(seed_data["demo"], age_days=4, prompt="modern luxury bathroom")
        with patch(SEND) as mock_send:
            _run(db_session)
        assert mock_send.call_args.kwargs["subject"] == (
            "Still interested in your modern renovation?"
        )


class TestFailures:

    def test_failed_send_leaves_flag_unset(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=4)
        with patch(SEND, side_effect=EmailDeliveryError("relay down")):
            summary = _run(db_session)

        assert summary["failed"] == 1
        assert summary["sent"][1] == 0
        assert _reload(db_session, lead.id).follow_up_1_sent is False

        # Retried on the next run
        with patch(SEND):
            summary = _run(db_session)
        assert summary["sent"][1] == 1
        assert _reload(db_session, lead.id).follow_up_1_sent is True

    def test_failure_does_not_stop_other_leads(self, db_session, seed_data, make_lead):
        first = make_lead(seed_data["demo"], age_days=4, email="first@example.com")
        second = make_lead(seed_data["demo"], age_days=5, email="second@example.com")

        def flaky(to, **kwargs):
            if to == "first@example.com":
                raise EmailDeliveryError("mailbox full")

        with patch(SEND, side_effect=flaky):
            summary = _run(db_session)

        assert summary["failed"] == 1
        assert summary["sent"][1] == 1
        assert _reload(db_session, first.id).follow_up_1_sent is False
        assert _reload(db_session, second.id).follow_up_1_sent is True

    def test_unconfigured_smtp_counts_as_failure(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=4)
        summary = _run(db_session)
        assert summary["failed"] == 1
        assert _reload(db_session, lead.id).follow_up_1_sent is False

    def test_lock_released_after_run(self, db_session, seed_data, make_lead):
        make_lead(seed_data["demo"], age_days=4)
        with patch(SEND):
            _run(db_session)
        assert JobLock.query.count() == 0


class TestJobLock:

    def test_held_lock_skips_run(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=4)
        lead_id = lead.id
        db_session.add(JobLock(name=follow_up_service.LOCK_NAME, holder="other-host:1"))
        db_session.commit()
        db_session.expunge_all()

        with patch(SEND) as mock_send:
            summary = _run(db_session)

        assert summary["locked"] is True
        mock_send.assert_not_called()
        assert _reload(db_session, lead_id).follow_up_1_sent is False
        # The other run's lock is untouched
        assert JobLock.query.count() == 1

    def test_stale_lock_is_taken_over(self, db_session, seed_data, make_lead):
        make_lead(seed_data["demo"], age_days=4)
        db_session.add(JobLock(
            name=follow_up_service.LOCK_NAME,
            holder="crashed-host:1",
            acquired_at=utcnow() - timedelta(hours=5),
        ))
        db_session.commit()
        db_session.expunge_all()

        with patch(SEND):
            summary = _run(db_session, lock_ttl_minutes=120)

        assert summary["locked"] is False
        assert summary["sent"][1] == 1

    def test_mark_sent_only_flips_once(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=4)
        repo = LeadRepository(db_session)
        assert repo.mark_follow_up_sent(lead, 1) is True
        assert repo.mark_follow_up_sent(lead, 1) is False

    def test_stage_3_does_not_close_a_lead_moved_on(self, db_session, seed_data, make_lead):
        lead = make_lead(
            seed_data["demo"], age_days=15, status="contacted",
            follow_up_1_sent=True, follow_up_2_sent=True,
        )
        LeadRepository(db_session).mark_follow_up_sent(lead, 3)
        db_session.commit()
        assert _reload(db_session, lead.id).status == "contacted"


class TestDryRun:

    def test_dry_run_sends_nothing(self, db_session, seed_data, make_lead):
        lead = make_lead(seed_data["demo"], age_days=4)
        with patch(SEND) as mock_send:
            summary = _run(db_session, dry_run=True)

        mock_send.assert_not_called()
        assert summary["sent"][1] == 1
        assert _reload(db_session, lead.id).follow_up_1_sent is False
        assert JobLock.query.count() == 0

    def test_cli_dry_run(self, app, db_session, seed_data, make_lead):
        make_lead(seed_data["demo"], age_days=4)
        runner = app.test_cli_runner()
        with patch(SEND) as mock_send:
            result = runner.invoke(args=["send-follow-ups", "--dry-run"])

        assert result.exit_code == 0
        assert "[DRY RUN] Follow-ups sent: day 3=1, day 7=0, day 14=0, failed=0" in result.output
        mock_send.assert_not_called()


class TestRendering:
    """Render each template through the real SMTP path with delivery stubbed."""

    @pytest.mark.parametrize("stage", [1, 2, 3])
    def test_follow_up_email_renders(self, stage, app, db_session, seed_data, make_lead):
        from renovision.services.notification_service import send_follow_up

        lead = make_lead(seed_data["demo"], age_days=15)
        with patch("renovision.services.email_service._deliver") as mock_deliver:
            send_follow_up(lead, seed_data["demo"], stage)

        msg = mock_deliver.call_args.args[1]
        assert msg["To"] == "jane@example.com"
        assert msg["Reply-To"] == "demo@example.com"
        html = msg.get_payload()[0].get_payload(decode=True).decode("utf-8")
        assert "Jane Homeowner" in html
        assert lead.reference_code in html
        assert "Demo Bathrooms Ltd" in html


class TestSchedule:

    def test_seconds_until_later_today(self):
        now = datetime(2026, 10, 18, 8, 30)
        assert seconds_until(10, now=now) == 90 * 60

    def test_seconds_until_tomorrow(self):
        now = datetime(2026, 10, 18, 10, 0)
        assert seconds_until(10, now=now) == 24 * 3600
