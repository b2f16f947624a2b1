"""Scoring quizzes and exams, and timing exam attempts."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from coursebag.learning.lesson import (
    DEFAULT_EXAM_DURATION,
    DEFAULT_PASSING_SCORE,
    ExamResult,
    Question,
    parse_timestamp,
)

QUIZ_PASSING_RATIO = 0.7

ALREADY_PASSED_MESSAGE = "Exam already completed and passed"


class ExamTimeExpiredError(ValueError):
    """Raised when an exam is submitted after its time limit."""


@dataclass
class QuizOutcome:
    """Result of grading a quiz locally."""

    score: int
    total: int

    @property
    def correct(self) -> bool:
        """True only for a perfect score."""
        return self.total > 0 and self.score == self.total

    @property
    def passed(self) -> bool:
        return self.total > 0 and self.score / self.total >= QUIZ_PASSING_RATIO


@dataclass
class ExamGrade:
    """Result of grading an exam locally."""

    score: int
    total_points: int
    passing_score: float
    graded_answers: list[dict] = field(default_factory=list)

    @property
    def percentage_score(self) -> float:
        return self.score / self.total_points * 100 if self.total_points > 0 else 0.0

    @property
    def passed(self) -> bool:
        return self.percentage_score >= self.passing_score


def grade_quiz(questions: list[Question], answers: list[int | None]) -> QuizOutcome:
    """Score quiz answers against the correct options, weighted by points.

    Args:
        questions: The quiz questions, with `correct_answer` set.
        answers: Selected option index per question; None for unanswered.

    Returns:
        QuizOutcome: Points scored out of points available.
    """
    score = 0
    total = 0
    for i, question in enumerate(questions):
        total += question.points
        if i < len(answers) and answers[i] is not None and answers[i] == question.correct_answer:
            score += question.points
    return QuizOutcome(score=score, total=total)


def grade_exam(
    questions: list[Question],
    answers: list[int | None],
    passing_score: float = DEFAULT_PASSING_SCORE,
) -> ExamGrade:
    """Score exam answers. Every question counts toward the total, answered or not."""
    score = 0
    total = 0
    graded = []
    for i, question in enumerate(questions):
        selected = answers[i] if i < len(answers) else None
        is_correct = selected is not None and selected == question.correct_answer
        points = question.points if is_correct else 0
        score += points
        total += question.points
        graded.append(
            {"questionIndex": i, "selectedOption": selected, "isCorrect": is_correct, "points": points}
        )
    return ExamGrade(score=score, total_points=total, passing_score=passing_score, graded_answers=graded)


def format_time_remaining(seconds: float) -> str:
    """Format seconds as `M:SS`."""
    seconds = max(0, int(seconds))
    minutes, remaining = divmod(seconds, 60)
    return f"{minutes}:{remaining:02d}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ExamSession:
    """A timed exam attempt.

    Attributes:
        lesson_id: The exam lesson
        started_at: When the server started the attempt
        time_limit: Minutes allowed
        passing_score: Percentage needed to pass
        questions: Questions as served for the attempt (without answers)
        result: Set once the attempt is graded, or immediately if the exam was
            already passed earlier
    """

    lesson_id: str
    started_at: datetime
    time_limit: int = DEFAULT_EXAM_DURATION
    passing_score: float = DEFAULT_PASSING_SCORE
    questions: list[Question] = field(default_factory=list)
    result: ExamResult | None = None

    @classmethod
    def from_start_response(cls, lesson_id: str, payload: dict, now: datetime | None = None) -> "ExamSession":
        """Build a session from the `exam/start` response body."""
        data = payload.get("data") or {}
        if payload.get("message") == ALREADY_PASSED_MESSAGE:
            result = ExamResult.from_dict({"lesson": lesson_id, "passed": True, **data})
            return cls(
                lesson_id=lesson_id,
                started_at=result.started_at or now or _now(),
                passing_score=data.get("passingScore") or DEFAULT_PASSING_SCORE,
                result=result,
            )
        return cls(
            lesson_id=lesson_id,
            started_at=parse_timestamp(data.get("startedAt")) or now or _now(),
            time_limit=data.get("timeLimit") or DEFAULT_EXAM_DURATION,
            passing_score=data.get("passingScore") or DEFAULT_PASSING_SCORE,
            questions=[Question.from_dict(q) for q in data.get("examQuestions") or []],
        )

    @property
    def submitted(self) -> bool:
        return self.result is not None

    @property
    def deadline(self) -> datetime:
        return self.started_at + timedelta(minutes=self.time_limit)

    def remaining_seconds(self, now: datetime | None = None) -> float:
        now = now or _now()
        return max(0.0, (self.deadline - now).total_seconds())

    def expired(self, now: datetime | None = None) -> bool:
        now = now or _now()
        return now > self.deadline

    def format_remaining(self, now: datetime | None = None) -> str:
        return format_time_remaining(self.remaining_seconds(now))

    def check_time(self, now: datetime | None = None) -> None:
        if self.expired(now):
            raise ExamTimeExpiredError("Time limit exceeded for this exam")
