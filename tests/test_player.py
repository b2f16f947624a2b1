#!/usr/bin/env python
"""Tests for the lesson player."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from coursebag.learning.certificate import CertificateNotEligibleError
from coursebag.learning.grading import ExamTimeExpiredError
from coursebag.learning.lesson import LessonKind, Progress
from coursebag.learning.player import LessonPlayer, ProgressionError

START = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

LESSONS = [
    {"_id": "l1", "title": "Welcome", "order": 1, "contentType": "video"},
    {"_id": "l2", "title": "Write a loop", "order": 2, "contentType": "assignment"},
    {
        "_id": "l3",
        "title": "Loops quiz",
        "order": 3,
        "contentType": "quiz",
        "content": {
            "quizQuestions": [
                {"question": "Q1", "options": ["a", "b"], "correctAnswer": 0},
                {"question": "Q2", "options": ["a", "b"], "correctAnswer": 1},
            ]
        },
    },
    {
        "_id": "l4",
        "title": "Final exam",
        "order": 4,
        "contentType": "exam",
        "content": {"examQuestions": [{"question": "E1", "options": ["a", "b"]}], "passingScore": 85},
    },
]


def body(request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def course(backend):
    """Routes for a four-lesson course."""
    backend.json("GET", "/courses/c1", {"success": True, "data": {"_id": "c1", "title": "Python"}})
    backend.json("GET", "/courses/c1/lessons", {"success": True, "data": LESSONS})
    for lesson in LESSONS:
        backend.json(
            "POST",
            f"/courses/c1/lessons/{lesson['_id']}/complete",
            {"success": True, "data": {"completedLessons": [lesson["_id"]]}},
        )
    return backend


@pytest.fixture
def enrolled(course, token_store):
    """An enrolled learner who has finished the first lesson."""
    token_store.set("abc")
    course.json(
        "GET",
        "/courses/c1/with-progress",
        {
            "success": True,
            "data": {
                "course": {"_id": "c1", "title": "Python"},
                "isEnrolled": True,
                "progress": {"completedLessons": ["l1"], "totalLessons": 4, "status": "active"},
            },
        },
    )
    return course


class TestLoad:
    """Test loading course data."""

    def test_anonymous_load(self, client, course):
        player = LessonPlayer(client, "c1").load()
        assert player.course["title"] == "Python"
        assert len(player.outline) == 4
        assert player.progress is None
        assert not player.is_enrolled
        assert player.resume().lesson_id == "l1"
        assert course.calls_to("/courses/c1/with-progress") == []

    def test_authenticated_load(self, client, enrolled):
        player = LessonPlayer(client, "c1").load()
        assert player.is_enrolled
        assert player.progress.completed_lessons == ["l1"]
        assert player.resume().lesson_id == "l2"
        assert enrolled.calls_to("/courses/c1/with-progress")[0].headers["Authorization"] == "Bearer abc"

    def test_rejected_token_falls_back_to_public_view(self, client, course, token_store):
        token_store.set("stale")
        course.json("GET", "/courses/c1/with-progress", {"error": "Not authorized"}, status=401)
        player = LessonPlayer(client, "c1").load()
        assert player.course == {"_id": "c1", "title": "Python"}
        assert player.progress is None
        assert not player.is_enrolled
        assert len(player.outline) == 4
        assert token_store.get() == "stale"

    def test_missing_course(self, client, backend):
        with pytest.raises(ProgressionError, match="Not found"):
            LessonPlayer(client, "nope").load()


class TestLessons:
    """Test completing lessons, quizzes and assignments."""

    def test_complete_lesson_returns_next(self, client, enrolled):
        player = LessonPlayer(client, "c1").load()
        assert ("/courses/c1/with-progress", True) in client.cache

        next_lesson = player.complete_lesson(player.outline.get("l2"))

        assert next_lesson.lesson_id == "l3"
        assert player.progress.is_completed("l2")
        assert ("/courses/c1/with-progress", True) not in client.cache

    def test_complete_lesson_failure(self, client, enrolled):
        enrolled.json("POST", "/courses/c1/lessons/l2/complete", {"success": False, "error": "Not enrolled"}, status=403)
        player = LessonPlayer(client, "c1").load()
        with pytest.raises(ProgressionError, match="Not enrolled"):
            player.complete_lesson(player.outline.get("l2"))

    def test_passing_quiz_completes_lesson(self, client, enrolled):
        player = LessonPlayer(client, "c1").load()
        outcome = player.submit_quiz(player.outline.get("l3"), [0, 1])
        assert outcome.correct
        assert player.progress.is_completed("l3")
        assert len(enrolled.calls_to("/courses/c1/lessons/l3/complete")) == 1

    def test_failing_quiz_does_not_complete(self, client, enrolled):
        player = LessonPlayer(client, "c1").load()
        outcome = player.submit_quiz(player.outline.get("l3"), [1, 1])
        assert not outcome.passed
        assert not player.progress.is_completed("l3")
        assert enrolled.calls_to("/courses/c1/lessons/l3/complete") == []

    def test_quiz_without_questions(self, client, enrolled):
        player = LessonPlayer(client, "c1").load()
        with pytest.raises(ValueError):
            player.submit_quiz(player.outline.get("l1"), [])

    def test_submit_assignment(self, client, enrolled):
        enrolled.json("POST", "/lessons/l2/assignment", {"success": True, "data": {}})
        player = LessonPlayer(client, "c1").load()

        next_lesson = player.submit_assignment(player.outline.get("l2"), "for i in range(3): print(i)")

        assert next_lesson.lesson_id == "l3"
        request = enrolled.calls_to("/lessons/l2/assignment")[0]
        assert body(request) == {"submissionText": "for i in range(3): print(i)"}
        assert player.progress.assignment_submissions["l2"].startswith("for i")
        assert player.progress.is_completed("l2")

    def test_empty_assignment_is_refused(self, client, enrolled):
        player = LessonPlayer(client, "c1").load()
        with pytest.raises(ValueError, match="empty"):
            player.submit_assignment(player.outline.get("l2"), "   ")
        with pytest.raises(ValueError, match="not an assignment"):
            player.submit_assignment(player.outline.get("l1"), "text")


class TestExam:
    """Test timed exams."""

    @pytest.fixture
    def exam(self, enrolled):
        enrolled.json(
            "POST",
            "/lessons/l4/exam/start",
            {
                "success": True,
                "data": {
                    "startedAt": START.isoformat(),
                    "timeLimit": 60,
                    "passingScore": 85,
                    "examQuestions": [{"question": "E1", "options": ["a", "b"]}],
                },
            },
        )
        return enrolled

    def test_pass_exam(self, client, exam):
        exam.json(
            "POST",
            "/lessons/l4/exam/submit",
            {
                "success": True,
                "data": {
                    "examResult": {"score": 1, "totalPoints": 1, "percentageScore": 100, "passed": True},
                    "passed": True,
                    "percentageScore": 100,
                },
            },
        )
        player = LessonPlayer(client, "c1").load()
        session = player.start_exam(player.outline.get("l4"))
        assert session.time_limit == 60
        assert len(session.questions) == 1

        result = player.submit_exam(session, [0], now=START + timedelta(minutes=10))

        assert result.passed
        assert result.percentage_score == 100.0
        assert result.lesson_id == "l4"
        assert player.progress.has_passed("l4")
        assert player.progress.is_completed("l4")
        submitted = body(exam.calls_to("/lessons/l4/exam/submit")[0])
        assert submitted["answers"] == [0]
        assert submitted["startedAt"] == START.isoformat()

    def test_failed_exam_does_not_complete(self, client, exam):
        exam.json(
            "POST",
            "/lessons/l4/exam/submit",
            {"success": True, "data": {"examResult": {"percentageScore": 0}, "passed": False, "percentageScore": 0}},
        )
        player = LessonPlayer(client, "c1").load()
        session = player.start_exam(player.outline.get("l4"))
        result = player.submit_exam(session, [1], now=START + timedelta(minutes=10))
        assert not result.passed
        assert not player.progress.is_completed("l4")
        with pytest.raises(ValueError, match="already been submitted"):
            player.submit_exam(session, [1], now=START + timedelta(minutes=11))

    def test_late_submission_is_refused_locally(self, client, exam):
        player = LessonPlayer(client, "c1").load()
        session = player.start_exam(player.outline.get("l4"))
        with pytest.raises(ExamTimeExpiredError):
            player.submit_exam(session, [0], now=START + timedelta(minutes=61))
        assert exam.calls_to("/lessons/l4/exam/submit") == []

    def test_exam_already_passed(self, client, enrolled):
        enrolled.json(
            "POST",
            "/lessons/l4/exam/start",
            {
                "success": True,
                "message": "Exam already completed and passed",
                "data": {"score": 1, "totalPoints": 1, "percentageScore": 100, "passed": True},
            },
        )
        player = LessonPlayer(client, "c1").load()
        session = player.start_exam(player.outline.get("l4"))
        assert session.submitted
        assert player.progress.is_completed("l4")

    def test_start_exam_on_other_lesson(self, client, enrolled):
        player = LessonPlayer(client, "c1").load()
        assert player.outline.get("l3").kind is LessonKind.QUIZ
        with pytest.raises(ValueError, match="not an exam"):
            player.start_exam(player.outline.get("l3"))


class TestEnrollmentAndCertificate:
    """Test enrollment requests and certificates."""

    def test_enroll(self, client, course, token_store):
        token_store.set("abc")
        course.json("POST", "/courses/c1/request-enroll", {"success": True, "data": {"status": "pending"}})
        assert LessonPlayer(client, "c1").enroll() == {"status": "pending"}

    def test_certificate_requires_completion(self, client, enrolled):
        player = LessonPlayer(client, "c1").load()
        with pytest.raises(CertificateNotEligibleError, match="complete all lessons"):
            player.request_certificate()
        assert enrolled.calls_to("/courses/c1/certificate") == []

    def test_certificate_issued(self, client, enrolled):
        enrolled.json("POST", "/courses/c1/certificate", {"success": True, "data": {"certificateId": "CERT-1"}})
        player = LessonPlayer(client, "c1").load()
        player.progress = Progress.from_dict(
            {
                "completedLessons": ["l1", "l2", "l3", "l4"],
                "totalLessons": 4,
                "examResults": [{"lesson": "l4", "percentageScore": 92, "passed": True}],
            }
        )

        data = player.request_certificate()

        assert data == {"certificateId": "CERT-1"}
        assert player.progress.certificate_issued
        assert player.progress.certificate["certificateUrl"] == "/api/v1/certificates/CERT-1"


class TestRejectedActions:
    """Test that actions the server refuses with 401 are not recorded."""

    @pytest.fixture
    def rejected(self, enrolled):
        for path in (
            "/courses/c1/lessons/l2/complete",
            "/courses/c1/request-enroll",
            "/courses/c1/certificate",
        ):
            enrolled.json("POST", path, {"error": "Not authorized"}, status=401)
        return enrolled

    def test_complete_lesson(self, client, rejected, token_store):
        player = LessonPlayer(client, "c1").load()
        with pytest.raises(ProgressionError, match="please log in"):
            player.complete_lesson(player.outline.get("l2"))
        assert not player.progress.is_completed("l2")
        assert token_store.get() == "abc"

    def test_complete_lesson_without_token(self, client, course):
        course.json("POST", "/courses/c1/lessons/l1/complete", {"error": "Not authorized"}, status=401)
        player = LessonPlayer(client, "c1").load()
        with pytest.raises(ProgressionError, match="please log in"):
            player.complete_lesson(player.outline.get("l1"))
        assert player.progress is None or not player.progress.is_completed("l1")

    def test_enroll(self, client, rejected):
        with pytest.raises(ProgressionError, match="request enrollment: please log in"):
            LessonPlayer(client, "c1").enroll()

    def test_certificate(self, client, rejected):
        player = LessonPlayer(client, "c1").load()
        player.progress = Progress.from_dict(
            {
                "completedLessons": ["l1", "l2", "l3", "l4"],
                "totalLessons": 4,
                "examResults": [{"lesson": "l4", "percentageScore": 92, "passed": True}],
            }
        )
        with pytest.raises(ProgressionError, match="please log in"):
            player.request_certificate()
        assert not player.progress.certificate_issued
