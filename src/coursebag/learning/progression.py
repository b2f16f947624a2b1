"""Ordering and navigation of the lessons in a course."""

from collections import defaultdict

from coursebag.learning.lesson import Lesson, LessonKind, Progress

UNCATEGORIZED = "uncategorized"


class CourseOutline:
    """The lessons of a course in play order.

    Args:
        lessons: Lessons in any order; they are sorted by `order`.
    """

    def __init__(self, lessons: list[Lesson]):
        self.lessons = sorted(lessons, key=lambda lesson: lesson.order)

    @classmethod
    def from_dicts(cls, data: list[dict]) -> "CourseOutline":
        return cls([Lesson.from_dict(d) for d in data])

    def __len__(self) -> int:
        return len(self.lessons)

    def __iter__(self):
        return iter(self.lessons)

    def get(self, lesson_id: str) -> Lesson | None:
        for lesson in self.lessons:
            if lesson.lesson_id == lesson_id:
                return lesson
        return None

    def _index(self, lesson: Lesson | str) -> int:
        lesson_id = lesson if isinstance(lesson, str) else lesson.lesson_id
        for i, candidate in enumerate(self.lessons):
            if candidate.lesson_id == lesson_id:
                return i
        raise KeyError(f"Lesson {lesson_id} is not part of this course")

    def by_section(self) -> dict[str, list[Lesson]]:
        """Group lessons by section id, keeping play order within each section."""
        sections: dict[str, list[Lesson]] = defaultdict(list)
        for lesson in self.lessons:
            sections[lesson.section_id or UNCATEGORIZED].append(lesson)
        return dict(sections)

    def next_lesson(self, lesson: Lesson | str) -> Lesson | None:
        i = self._index(lesson)
        return self.lessons[i + 1] if i + 1 < len(self.lessons) else None

    def previous_lesson(self, lesson: Lesson | str) -> Lesson | None:
        i = self._index(lesson)
        return self.lessons[i - 1] if i > 0 else None

    def is_final(self, lesson: Lesson) -> bool:
        return bool(self.lessons) and lesson.order == self.lessons[-1].order

    def final_exam(self) -> Lesson | None:
        """The last exam lesson of the course, which gates the certificate."""
        exams = [lesson for lesson in self.lessons if lesson.kind is LessonKind.EXAM]
        return exams[-1] if exams else None

    def suggested_kind(self, lesson: Lesson) -> LessonKind:
        """The kind a lesson plays as in the quiz/assignment/exam rhythm.

        The final lesson is the exam, every third lesson is a quiz, and the
        lesson two after each quiz is an assignment. Other lessons keep their
        own content type.
        """
        if lesson.kind is LessonKind.EXAM or self.is_final(lesson):
            return LessonKind.EXAM
        if lesson.order % 3 == 0:
            return LessonKind.QUIZ
        if (lesson.order - 2) % 3 == 0:
            return LessonKind.ASSIGNMENT
        return lesson.kind

    def resume_lesson(self, progress: Progress | None = None) -> Lesson | None:
        """The first incomplete lesson, or the first lesson if all are complete."""
        if not self.lessons:
            return None
        if progress is not None:
            for lesson in self.lessons:
                if not progress.is_completed(lesson.lesson_id):
                    return lesson
        return self.lessons[0]

    def progress_percentage(self, progress: Progress) -> float:
        total = progress.total_lessons or len(self.lessons)
        if total <= 0:
            return 0.0
        return len(progress.completed_lessons) / total * 100

    def is_complete(self, progress: Progress) -> bool:
        total = progress.total_lessons or len(self.lessons)
        return len(progress.completed_lessons) >= total
