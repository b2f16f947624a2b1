"""Play through a course: load it, complete lessons, take quizzes and exams."""

from datetime import datetime
from typing import Any

from loguru import logger

from coursebag.api.client import ApiClient, empty_enrollment, unwrap_data
from coursebag.api.errors import ApiError
from coursebag.learning.certificate import check_eligibility
from coursebag.learning.grading import ExamSession, QuizOutcome, grade_quiz
from coursebag.learning.lesson import ExamResult, Lesson, LessonKind, Progress
from coursebag.learning.progression import CourseOutline


class ProgressionError(RuntimeError):
    """Raised when the backend refuses a lesson action."""


def _check(payload: Any, action: str) -> Any:
    """Unwrap a response, raising if it carries an error instead of data."""
    if isinstance(payload, dict) and payload.get("error"):
        raise ProgressionError(f"Failed to {action}: {payload['error']}")
    if isinstance(payload, dict) and payload.get("success") is False:
        raise ProgressionError(f"Failed to {action}")
    return unwrap_data(payload)


def _check_accepted(payload: Any, action: str) -> Any:
    """Like `_check`, but also refuse the public-data fallback of a course endpoint.

    A course request the server rejects with 401 comes back as an empty
    enrollment rather than an error, which is no confirmation of a write.
    """
    fallback = empty_enrollment(None)
    if (
        isinstance(payload, dict)
        and payload.keys() == fallback.keys()
        and payload["isEnrolled"] is False
        and payload["progress"] is None
    ):
        raise ProgressionError(f"Failed to {action}: please log in")
    return _check(payload, action)


class LessonPlayer:
    """Drives one learner through one course.

    Public course data is always loaded first so that a course can be viewed
    without an account. Progress is layered on top when a token is stored.

    Attributes:
        client: API client used for every request
        course_id: The course being played
        course: Course document as returned by the backend
        outline: The course's lessons in play order
        progress: The learner's progress, or None when not enrolled or anonymous
        is_enrolled: Whether the backend reports an enrollment
    """

    def __init__(self, client: ApiClient, course_id: str):
        self.client = client
        self.course_id = course_id
        self.course: dict = {}
        self.outline = CourseOutline([])
        self.progress: Progress | None = None
        self.is_enrolled = False

    @property
    def _progress_endpoint(self) -> str:
        return f"/courses/{self.course_id}/with-progress"

    def load(self) -> "LessonPlayer":
        """Fetch the course, its lessons and (when logged in) the learner's progress.

        Returns:
            LessonPlayer: self, for chaining.

        Raises:
            ProgressionError: If even the public course data cannot be loaded.
        """
        logger.info(f"Loading public data for course {self.course_id}")
        self.course = _check(self.client.get(f"/courses/{self.course_id}"), "load course data") or {}
        lessons = unwrap_data(self.client.get(f"/courses/{self.course_id}/lessons"))
        if isinstance(lessons, list):
            self.outline = CourseOutline.from_dicts(lessons)

        if not self.client.is_authenticated():
            return self

        logger.info("Attempting to load authenticated data")
        try:
            data = unwrap_data(self.client.get(self._progress_endpoint, requires_auth=True))
            if isinstance(data, dict):
                if data.get("course"):
                    self.course = data["course"]
                if data.get("progress"):
                    self.progress = Progress.from_dict(data["progress"])
                self.is_enrolled = bool(data.get("isEnrolled", self.progress is not None))
            lessons = unwrap_data(self.client.get(f"/courses/{self.course_id}/lessons", requires_auth=True))
            if isinstance(lessons, list):
                self.outline = CourseOutline.from_dicts(lessons)
        except ApiError as e:
            logger.warning(f"Authentication failed but course can still be viewed: {e}")
        return self

    def fetch_lesson(self, lesson_id: str) -> Lesson:
        """Return a lesson from the outline, fetching it if the outline lacks it."""
        lesson = self.outline.get(lesson_id)
        if lesson is not None:
            return lesson
        data = _check(self.client.get(f"/lessons/{lesson_id}", requires_auth=True), "load lesson")
        return Lesson.from_dict(data)

    def resume(self) -> Lesson | None:
        """The lesson to continue with."""
        return self.outline.resume_lesson(self.progress)

    def _ensure_progress(self) -> Progress:
        if self.progress is None:
            self.progress = Progress(total_lessons=len(self.outline))
        return self.progress

    def _invalidate_progress(self) -> None:
        self.client.cache.invalidate(self._progress_endpoint)

    def complete_lesson(self, lesson: Lesson) -> Lesson | None:
        """Mark a lesson complete and return the next lesson, if any."""
        _check_accepted(
            self.client.post(
                f"/courses/{self.course_id}/lessons/{lesson.lesson_id}/complete", {}, requires_auth=True
            ),
            "mark lesson as complete",
        )
        self._invalidate_progress()
        self._ensure_progress().mark_completed(lesson.lesson_id)
        logger.info(f"Completed lesson {lesson}")
        return self.outline.next_lesson(lesson) if self.outline.get(lesson.lesson_id) else None

    def submit_quiz(self, lesson: Lesson, answers: list[int | None]) -> QuizOutcome:
        """Grade a quiz and complete the lesson if the score passes."""
        if not lesson.quiz_questions:
            raise ValueError(f"Lesson {lesson.lesson_id} has no quiz questions")
        outcome = grade_quiz(lesson.quiz_questions, answers)
        logger.info(f"Quiz score {outcome.score}/{outcome.total}")
        if outcome.passed:
            self.complete_lesson(lesson)
        else:
            logger.info("Quiz score is below the passing threshold")
        return outcome

    def submit_assignment(self, lesson: Lesson, text: str) -> Lesson | None:
        """Submit an assignment and complete the lesson.

        Returns:
            Lesson | None: The next lesson.
        """
        if lesson.kind is not LessonKind.ASSIGNMENT:
            raise ValueError(f"Lesson {lesson.lesson_id} is not an assignment")
        if not text.strip():
            raise ValueError("Assignment submission must not be empty")
        _check(
            self.client.post(f"/lessons/{lesson.lesson_id}/assignment", {"submissionText": text}, requires_auth=True),
            "submit assignment",
        )
        self._ensure_progress().assignment_submissions[lesson.lesson_id] = text
        return self.complete_lesson(lesson)

    def start_exam(self, lesson: Lesson, now: datetime | None = None) -> ExamSession:
        """Start a timed exam attempt.

        If the exam was already passed, the returned session carries that
        result and nothing needs to be submitted.
        """
        if lesson.kind is not LessonKind.EXAM:
            raise ValueError(f"Lesson {lesson.lesson_id} is not an exam")
        payload = self.client.post(f"/lessons/{lesson.lesson_id}/exam/start", {}, requires_auth=True)
        _check(payload, "start exam")
        session = ExamSession.from_start_response(lesson.lesson_id, payload, now=now)
        if session.result is not None:
            logger.info("Exam already completed and passed")
            self._ensure_progress().mark_completed(lesson.lesson_id)
            return session
        if not session.questions:
            session.questions = lesson.exam_questions
        logger.info(f"Exam started; {session.time_limit} minutes to pass with {session.passing_score}%")
        return session

    def submit_exam(self, session: ExamSession, answers: list[int | None], now: datetime | None = None) -> ExamResult:
        """Submit exam answers for grading by the backend.

        Raises:
            ExamTimeExpiredError: If the time limit has already passed.
            ValueError: If the session was already submitted.
        """
        if session.submitted:
            raise ValueError("Exam has already been submitted")
        session.check_time(now)
        data = _check(
            self.client.post(
                f"/lessons/{session.lesson_id}/exam/submit",
                {"answers": answers, "startedAt": session.started_at.isoformat()},
                requires_auth=True,
            ),
            "submit exam",
        )
        if not isinstance(data, dict):
            raise ProgressionError("Failed to submit exam: unexpected response")
        result = ExamResult.from_dict({"lesson": session.lesson_id, **(data.get("examResult") or {})})
        result.passed = bool(data.get("passed", result.passed))
        if data.get("percentageScore") is not None:
            result.percentage_score = float(data["percentageScore"])
        session.result = result
        self._ensure_progress().exam_results.append(result)

        if result.passed:
            logger.info(f"Passed the exam with {result.percentage_score:.1f}%")
            self.complete_lesson(self.fetch_lesson(session.lesson_id))
        else:
            logger.info(
                f"Exam score {result.percentage_score:.1f}% is below the required {session.passing_score}%"
            )
        return result

    def enroll(self) -> Any:
        """Ask to be enrolled in the course."""
        data = _check_accepted(
            self.client.post(f"/courses/{self.course_id}/request-enroll", {}, requires_auth=True),
            "request enrollment",
        )
        self._invalidate_progress()
        return data

    def request_certificate(self) -> dict:
        """Issue the course certificate once the course is finished.

        Raises:
            CertificateNotEligibleError: If the learner does not qualify yet.
        """
        summary = check_eligibility(self.outline, self._ensure_progress())
        logger.info(f"Requesting certificate (grade {summary.grade})")
        data = _check_accepted(
            self.client.post(f"/courses/{self.course_id}/certificate", {}, requires_auth=True),
            "generate certificate",
        )
        certificate_id = data.get("certificateId") if isinstance(data, dict) else None
        self._ensure_progress().certificate = {
            "issued": True,
            "certificateId": certificate_id,
            "certificateUrl": f"/api/v1/certificates/{certificate_id}" if certificate_id else None,
        }
        self._invalidate_progress()
        return data
