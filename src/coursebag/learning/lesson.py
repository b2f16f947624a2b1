"""Course content and learner progress as returned by the LMS backend."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

DEFAULT_EXAM_DURATION = 60  # minutes
DEFAULT_PASSING_SCORE = 85  # percent


class LessonKind(Enum):
    """The kinds of lesson content the backend serves."""

    VIDEO = "video"
    TEXT = "text"
    YOUTUBE = "youtube"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    EXAM = "exam"

    @classmethod
    def from_value(cls, value: str | None) -> "LessonKind":
        """Parse a `contentType` value, treating unknown values as text."""
        try:
            return cls(value)
        except ValueError:
            return cls.TEXT

    @property
    def is_assessment(self) -> bool:
        return self in (LessonKind.QUIZ, LessonKind.ASSIGNMENT, LessonKind.EXAM)


def _object_id(value: Any) -> str | None:
    """Return the id of a populated document or a bare id."""
    if isinstance(value, dict):
        value = value.get("_id") or value.get("id")
    return str(value) if value is not None else None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Question:
    """A multiple-choice question in a quiz or exam.

    Attributes:
        question: The question text
        options: Answer choices, addressed by index
        correct_answer: Index of the correct option; None when hidden by the server
        points: Weight of the question
    """

    question: str
    options: list[str] = field(default_factory=list)
    correct_answer: int | None = None
    points: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        points = data.get("points")
        return cls(
            question=data.get("question", ""),
            options=list(data.get("options") or []),
            correct_answer=data.get("correctAnswer"),
            points=points if isinstance(points, int) and points > 0 else 1,
        )

    def to_dict(self) -> dict:
        data = {"question": self.question, "options": self.options, "points": self.points}
        if self.correct_answer is not None:
            data["correctAnswer"] = self.correct_answer
        return data


@dataclass
class Lesson:
    """A lesson within a course.

    Attributes:
        lesson_id: The backend `_id`
        title: Lesson title
        order: Position within the course; lessons are played in this order
        kind: Content type
        section_id: Section the lesson belongs to, if any
        description: Free-text description
        quiz_questions: Questions of a quiz lesson
        exam_questions: Questions of an exam lesson
        exam_duration: Exam time limit in minutes
        passing_score: Percentage needed to pass the exam
    """

    lesson_id: str
    title: str = ""
    order: int = 0
    kind: LessonKind = LessonKind.TEXT
    section_id: str | None = None
    description: str = ""
    quiz_questions: list[Question] = field(default_factory=list)
    exam_questions: list[Question] = field(default_factory=list)
    exam_duration: int = DEFAULT_EXAM_DURATION
    passing_score: int = DEFAULT_PASSING_SCORE

    def __str__(self) -> str:
        return f"{self.order}. {self.title} ({self.kind.value})"

    @classmethod
    def from_dict(cls, data: dict) -> "Lesson":
        """Create a Lesson from the backend's JSON document."""
        content = data.get("content") or {}
        return cls(
            lesson_id=_object_id(data) or "",
            title=data.get("title", ""),
            order=int(data.get("order") or 0),
            kind=LessonKind.from_value(data.get("contentType")),
            section_id=_object_id(data.get("section")),
            description=data.get("description", "") or "",
            quiz_questions=[Question.from_dict(q) for q in content.get("quizQuestions") or []],
            exam_questions=[Question.from_dict(q) for q in content.get("examQuestions") or []],
            exam_duration=content.get("examDuration") or DEFAULT_EXAM_DURATION,
            passing_score=content.get("passingScore") or DEFAULT_PASSING_SCORE,
        )

    def to_dict(self) -> dict:
        return {
            "_id": self.lesson_id,
            "title": self.title,
            "order": self.order,
            "contentType": self.kind.value,
            "section": self.section_id,
            "description": self.description,
            "content": {
                "quizQuestions": [q.to_dict() for q in self.quiz_questions],
                "examQuestions": [q.to_dict() for q in self.exam_questions],
                "examDuration": self.exam_duration,
                "passingScore": self.passing_score,
            },
        }


@dataclass
class ExamResult:
    """A graded exam attempt."""

    lesson_id: str
    score: float
    total_points: float
    percentage_score: float
    passed: bool
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ExamResult":
        return cls(
            lesson_id=_object_id(data.get("lesson")) or "",
            score=data.get("score", 0),
            total_points=data.get("totalPoints", 0),
            percentage_score=float(data.get("percentageScore", 0)),
            passed=bool(data.get("passed")),
            started_at=parse_timestamp(data.get("startedAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
        )

    def to_dict(self) -> dict:
        return {
            "lesson": self.lesson_id,
            "score": self.score,
            "totalPoints": self.total_points,
            "percentageScore": self.percentage_score,
            "passed": self.passed,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class Progress:
    """A learner's progress through one course.

    Attributes:
        completed_lessons: Ids of completed lessons, in completion order
        total_lessons: Number of lessons in the course, as reported by the server
        exam_results: Every graded exam attempt
        assignment_submissions: Submitted assignment texts keyed by lesson id
        certificate: Certificate info once issued
        status: Enrollment status (pending, active, completed, rejected, cancelled)
    """

    completed_lessons: list[str] = field(default_factory=list)
    total_lessons: int = 0
    exam_results: list[ExamResult] = field(default_factory=list)
    assignment_submissions: dict[str, str] = field(default_factory=dict)
    certificate: dict | None = None
    status: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Progress":
        submissions = {}
        for sub in data.get("assignmentSubmissions") or []:
            lesson_id = _object_id(sub.get("lesson"))
            if lesson_id:
                submissions[lesson_id] = sub.get("submissionText", "")
        completed = [_object_id(x) for x in data.get("completedLessons") or []]
        return cls(
            completed_lessons=[lesson_id for lesson_id in completed if lesson_id],
            total_lessons=int(data.get("totalLessons") or 0),
            exam_results=[ExamResult.from_dict(r) for r in data.get("examResults") or []],
            assignment_submissions=submissions,
            certificate=data.get("certificate"),
            status=data.get("status"),
        )

    def to_dict(self) -> dict:
        return {
            "completedLessons": list(self.completed_lessons),
            "totalLessons": self.total_lessons,
            "examResults": [r.to_dict() for r in self.exam_results],
            "assignmentSubmissions": [
                {"lesson": k, "submissionText": v} for k, v in self.assignment_submissions.items()
            ],
            "certificate": self.certificate,
            "status": self.status,
        }

    def is_completed(self, lesson_id: str) -> bool:
        return lesson_id in self.completed_lessons

    def mark_completed(self, lesson_id: str) -> bool:
        """Record a completed lesson. Returns False if it was already recorded."""
        if lesson_id in self.completed_lessons:
            return False
        self.completed_lessons.append(lesson_id)
        return True

    def exam_result(self, lesson_id: str) -> ExamResult | None:
        """Return the best attempt for an exam: a passing one if any, else the latest."""
        attempts = [r for r in self.exam_results if r.lesson_id == lesson_id]
        if not attempts:
            return None
        passing = [r for r in attempts if r.passed]
        return passing[0] if passing else attempts[-1]

    def has_passed(self, lesson_id: str) -> bool:
        result = self.exam_result(lesson_id)
        return result is not None and result.passed

    @property
    def certificate_issued(self) -> bool:
        return bool(self.certificate and self.certificate.get("issued"))

    @property
    def percentage(self) -> float:
        if self.total_lessons <= 0:
            return 0.0
        return len(self.completed_lessons) / self.total_lessons * 100
