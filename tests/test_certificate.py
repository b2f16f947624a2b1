#!/usr/bin/env python
"""Tests for certificate eligibility."""

import pytest

from coursebag.learning.certificate import (
    CertificateNotEligibleError,
    check_eligibility,
    estimated_hours,
    letter_grade,
)
from coursebag.learning.lesson import ExamResult, Lesson, LessonKind, Progress
from coursebag.learning.progression import CourseOutline


@pytest.fixture
def outline():
    return CourseOutline(
        [
            Lesson("l1", order=1),
            Lesson("l2", order=2),
            Lesson("l3", order=3, kind=LessonKind.EXAM),
        ]
    )


def finished(score: float, passed: bool = True, certificate: dict | None = None) -> Progress:
    return Progress(
        completed_lessons=["l1", "l2", "l3"],
        total_lessons=3,
        exam_results=[ExamResult("l3", score, 100, score, passed)],
        certificate=certificate,
    )


class TestCertificate:
    """Test grading and eligibility rules."""

    @pytest.mark.parametrize("percentage,grade", [(95, "A"), (90, "A"), (85, "B"), (70, "C"), (69.9, "Pass")])
    def test_letter_grade(self, percentage, grade):
        assert letter_grade(percentage) == grade

    def test_estimated_hours(self):
        assert estimated_hours(7) == 3.5

    def test_eligible(self, outline):
        summary = check_eligibility(outline, finished(88))
        assert summary.grade == "B"
        assert summary.percentage_score == 88
        assert summary.hours_completed == 1.5

    def test_incomplete_course(self, outline):
        progress = Progress(completed_lessons=["l1"], total_lessons=3)
        with pytest.raises(CertificateNotEligibleError, match="complete all lessons"):
            check_eligibility(outline, progress)

    def test_failed_final_exam(self, outline):
        with pytest.raises(CertificateNotEligibleError, match="pass the final exam"):
            check_eligibility(outline, finished(60, passed=False))

    def test_already_issued(self, outline):
        with pytest.raises(CertificateNotEligibleError, match="already been issued"):
            check_eligibility(outline, finished(95, certificate={"issued": True}))

    def test_course_without_exam(self):
        outline = CourseOutline([Lesson("l1", order=1)])
        summary = check_eligibility(outline, Progress(completed_lessons=["l1"], total_lessons=1))
        assert summary.grade == "N/A"
