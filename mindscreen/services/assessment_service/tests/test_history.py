"""Tests for history, detail and stats readers."""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from mindscreen.shared.database import RepositoryError
from mindscreen.shared.models import (
    AssessmentRecord,
    Instrument,
    PersistenceFailure,
    SeverityLevel,
    UnknownInstrument,
)
from mindscreen.services.assessment_service.assessment_repository import AssessmentRepository
from mindscreen.services.assessment_service.history import AssessmentHistoryReader


def store(repository, instrument=Instrument.PHQ9, score=5, severity=SeverityLevel.MILD,
          student_id="student_1", tenant_id="college_1"):
    return repository.insert(AssessmentRecord(
        student_id=student_id,
        tenant_id=tenant_id,
        instrument=instrument,
        responses={"q1": 1},
        score=score,
        severity=severity,
        guidance="Small steps help.",
        recommended_actions=("Take a walk.", "Journal tonight."),
    ))


@pytest.fixture
def repository():
    return AssessmentRepository()


@pytest.fixture
def reader(repository):
    return AssessmentHistoryReader(repository)


class TestGetHistory:
    """Tests for history listings."""

    def test_history_view_shape(self, reader, repository):
        record = store(repository)

        history = reader.get_history("student_1", "college_1")

        assert history == [{
            "id": record.id,
            "assessmentName": "PHQ-9",
            "date": record.created_at.date().isoformat(),
            "time": record.created_at.strftime("%H:%M:%S"),
            "score": 5,
            "severity": "Mild",
            "responses": {"q1": 1},
        }]

    def test_history_filters_form_type(self, reader, repository):
        store(repository)
        store(repository, instrument=Instrument.GAD7)

        history = reader.get_history("student_1", "college_1", form_type="GAD-7")
        assert [h["assessmentName"] for h in history] == ["GAD-7"]

    def test_history_alias_filter(self, reader, repository):
        store(repository, instrument=Instrument.CSSRS, score=1, severity=SeverityLevel.MINIMAL)

        history = reader.get_history("student_1", "college_1", form_type="C-SSRS")
        assert len(history) == 1

    def test_unknown_form_type(self, reader):
        with pytest.raises(UnknownInstrument):
            reader.get_history("student_1", "college_1", form_type="XYZ")

    @pytest.mark.parametrize("limit", [0, 101, -5])
    def test_limit_bounds(self, reader, limit):
        with pytest.raises(ValueError):
            reader.get_history("student_1", "college_1", limit=limit)

    def test_negative_offset(self, reader):
        with pytest.raises(ValueError):
            reader.get_history("student_1", "college_1", offset=-1)

    def test_offset_without_limit_uses_default_page(self, reader, repository):
        for score in range(15):
            store(repository, score=score)

        history = reader.get_history("student_1", "college_1", offset=2)
        assert len(history) == 10

    def test_no_limit_returns_everything(self, reader, repository):
        for score in range(15):
            store(repository, score=score)

        assert len(reader.get_history("student_1", "college_1")) == 15

    def test_other_tenant_invisible(self, reader, repository):
        store(repository, tenant_id="college_2")
        assert reader.get_history("student_1", "college_1") == []

    def test_repository_error_translated(self):
        repository = MagicMock()
        repository.history.side_effect = RepositoryError("down")
        reader = AssessmentHistoryReader(repository)

        with pytest.raises(PersistenceFailure):
            reader.get_history("student_1", "college_1")


class TestGetAssessment:
    """Tests for single-assessment detail."""

    def test_detail_includes_guidance(self, reader, repository):
        record = store(repository)

        detail = reader.get_assessment(record.id, "student_1", "college_1")

        assert detail["id"] == record.id
        assert detail["guidance"] == "Small steps help."
        assert detail["recommendedActions"] == ["Take a walk.", "Journal tonight."]

    def test_other_student_gets_none(self, reader, repository):
        record = store(repository)
        assert reader.get_assessment(record.id, "student_2", "college_1") is None

    def test_missing_gets_none(self, reader):
        assert reader.get_assessment("0b7e6f0c-1f9a-4c53-9a51-6d2f5f6a7b80", "s", "c") is None


class TestGetStats:
    """Tests for the stats summary."""

    def test_empty_stats(self, reader):
        assert reader.get_stats("student_1", "college_1") == {
            "totalAssessments": 0,
            "assessmentsByType": {},
            "recentAssessments": [],
        }

    def test_stats_by_type_uses_latest(self, reader, repository):
        store(repository, score=3, severity=SeverityLevel.MINIMAL)
        latest = store(repository, score=12, severity=SeverityLevel.MODERATE)
        store(repository, instrument=Instrument.GAD7, score=6)

        stats = reader.get_stats("student_1", "college_1")

        assert stats["totalAssessments"] == 3
        phq = stats["assessmentsByType"]["PHQ-9"]
        assert phq["count"] == 2
        assert phq["latestScore"] == 12
        assert phq["latestSeverity"] == "Moderate"
        assert phq["latestDate"] == latest.created_at.isoformat()
        assert stats["assessmentsByType"]["GAD-7"]["count"] == 1

    def test_recent_limited_to_five(self, reader, repository):
        stored = [store(repository, score=n) for n in range(7)]

        recent = reader.get_stats("student_1", "college_1")["recentAssessments"]

        assert [r["id"] for r in recent] == [r.id for r in reversed(stored)][:5]
        assert recent[0] == {
            "id": stored[-1].id,
            "type": "PHQ-9",
            "score": 6,
            "severity": "Mild",
            "date": stored[-1].created_at.date().isoformat(),
        }

    def test_stats_from_static_rows(self):
        """Stats are computed from whatever order-preserving rows storage returns."""
        created = datetime(2026, 1, 16, 9, 30, tzinfo=timezone.utc)
        row = AssessmentRecord(
            student_id="s", tenant_id="c", instrument=Instrument.WHO5, responses={},
            score=25, severity=SeverityLevel.MINIMAL, guidance="g", id="a1", created_at=created,
        )
        repository = MagicMock()
        repository.history.return_value = [row]

        stats = AssessmentHistoryReader(repository).get_stats("s", "c")

        assert stats["assessmentsByType"]["WHO-5"]["latestDate"] == created.isoformat()
        assert stats["recentAssessments"][0]["date"] == "2026-01-16"
