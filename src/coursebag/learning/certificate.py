"""Certificate eligibility and grading."""

from dataclasses import dataclass

from coursebag.learning.lesson import Progress
from coursebag.learning.progression import CourseOutline

HOURS_PER_LESSON = 0.5


class CertificateNotEligibleError(ValueError):
    """Raised when a learner cannot receive a certificate yet."""


@dataclass
class CertificateSummary:
    """What a certificate would record for a course."""

    grade: str
    percentage_score: float
    hours_completed: float


def letter_grade(percentage: float) -> str:
    if percentage >= 90:
        return "A"
    if percentage >= 80:
        return "B"
    if percentage >= 70:
        return "C"
    return "Pass"


def estimated_hours(total_lessons: int) -> float:
    return total_lessons * HOURS_PER_LESSON


def check_eligibility(outline: CourseOutline, progress: Progress) -> CertificateSummary:
    """Check that a certificate can be issued and summarise it.

    The learner must have completed every lesson, passed the course's final
    exam (if it has one) and not already received a certificate.

    Args:
        outline: The course's lessons.
        progress: The learner's progress in the course.

    Returns:
        CertificateSummary: Grade, exam percentage and estimated hours.

    Raises:
        CertificateNotEligibleError: With the reason the certificate is withheld.
    """
    if not outline.is_complete(progress):
        raise CertificateNotEligibleError("You must complete all lessons to receive a certificate")

    grade = "N/A"
    percentage = 0.0
    final_exam = outline.final_exam()
    if final_exam is not None:
        result = progress.exam_result(final_exam.lesson_id)
        if result is None or not result.passed:
            raise CertificateNotEligibleError("You must pass the final exam to receive a certificate")
        percentage = result.percentage_score
        grade = letter_grade(percentage)

    if progress.certificate_issued:
        raise CertificateNotEligibleError("Certificate has already been issued")

    total = progress.total_lessons or len(outline)
    return CertificateSummary(grade=grade, percentage_score=percentage, hours_completed=estimated_hours(total))
