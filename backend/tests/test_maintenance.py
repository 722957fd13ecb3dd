"""
Tests for the expired-exam sweep
"""
from datetime import timedelta
from unittest.mock import patch

import pytest

from examguard.models.exam import Exam
from examguard.services.exam_service import sweep_expired_exams
from examguard.tasks import maintenance
from examguard.utils.timezone import get_utc_now


@pytest.fixture(autouse=True)
def fake_cache():
    with patch.object(maintenance, "cache") as cache:
        yield cache


class TestExamSweep:
    def test_only_past_exams_are_deactivated(self, db, make_exam):
        expired = make_exam("OLD", start_offset=timedelta(days=-3), end_offset=timedelta(days=-1))
        current = make_exam("NOW")

        assert sweep_expired_exams(db, get_utc_now()) == 1

        db.expire_all()
        assert db.query(Exam).filter(Exam.exam_id == expired.exam_id).first().is_active is False
        assert db.query(Exam).filter(Exam.exam_id == current.exam_id).first().is_active is True

    def test_second_run_is_a_no_op(self, db, make_exam):
        make_exam("OLD", start_offset=timedelta(days=-3), end_offset=timedelta(days=-1))

        sweep_expired_exams(db, get_utc_now())
        assert sweep_expired_exams(db, get_utc_now()) == 0

    def test_run_records_summary(self, db, make_exam, fake_cache):
        make_exam("OLD", start_offset=timedelta(days=-3), end_offset=timedelta(days=-1))

        summary = maintenance.run_exam_sweep()

        assert summary["deactivated"] == 1
        fake_cache.set.assert_called_once()
        assert fake_cache.set.call_args[0][0] == maintenance.SWEEP_SUMMARY_KEY

    def test_failure_is_logged_not_raised(self, caplog):
        with patch.object(maintenance, "sweep_expired_exams", side_effect=RuntimeError("db down")):
            assert maintenance.run_exam_sweep() is None
        assert "db down" in caplog.text

    def test_celery_task_runs_sweep(self):
        with patch.object(maintenance, "run_exam_sweep", return_value={"deactivated": 0}) as run:
            assert maintenance.cleanup_expired_exams() == {"deactivated": 0}
        run.assert_called_once()

    def test_beat_schedule(self):
        from examguard.core.celery_app import celery_app

        entry = celery_app.conf.beat_schedule["cleanup-expired-exams"]
        assert entry["task"] == "cleanup_expired_exams"
        assert entry["schedule"] == 3600.0
