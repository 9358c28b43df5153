"""
Archivable entity registry.

Declares, per entity type, the model, the matrix keys guarding it and the
relations that block a plain delete and get purged by a cascade.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.core.errors import ConfigurationError
from app.features.academics.models import (
    Attendance,
    Class,
    ClassSection,
    Enrollment,
    Exam,
    ExamResult,
    Student,
    Teacher,
)
from app.features.finance.models import StudentPayment, TeacherPayment


@dataclass(frozen=True)
class Relation:
    """
    Rows of `model` whose `foreign_key` points at the parent.

    `children` are purged before these rows during a cascade.
    """
    name: str
    model: Any
    foreign_key: str
    children: tuple["Relation", ...] = ()

    @property
    def column(self):
        return getattr(self.model, self.foreign_key)


@dataclass(frozen=True)
class EntitySpec:
    entity_type: str
    model: Any
    label: str
    page: str
    relations: tuple[Relation, ...] = field(default_factory=tuple)

    @property
    def delete_action(self) -> str:
        return f"{self.entity_type}:delete"

    @property
    def restore_action(self) -> str:
        return f"{self.entity_type}:restore"

    @property
    def purge_action(self) -> str:
        return f"{self.entity_type}:purge"


class EntityType(str, Enum):
    STUDENTS = "students"
    TEACHERS = "teachers"
    EXAMS = "exams"
    STUDENT_PAYMENTS = "student-payments"
    TEACHER_PAYMENTS = "teacher-payments"


def _section_rows(name: str, foreign_key: str) -> Relation:
    # A section's own attendance, enrollment and exam rows go first
    return Relation(
        name,
        ClassSection,
        foreign_key,
        children=(
            Relation("enrollments", Enrollment, "class_section_id"),
            Relation("attendances", Attendance, "class_section_id"),
            Relation(
                "exams",
                Exam,
                "class_section_id",
                children=(Relation("results", ExamResult, "exam_id"),),
            ),
        ),
    )


ENTITY_SPECS: dict[str, EntitySpec] = {
    EntityType.STUDENTS.value: EntitySpec(
        entity_type=EntityType.STUDENTS.value,
        model=Student,
        label="student",
        page="/students",
        relations=(
            Relation("attendances", Attendance, "student_id"),
            Relation("enrollments", Enrollment, "student_id"),
            Relation("payments", StudentPayment, "student_id"),
            Relation("examResults", ExamResult, "student_id"),
        ),
    ),
    EntityType.TEACHERS.value: EntitySpec(
        entity_type=EntityType.TEACHERS.value,
        model=Teacher,
        label="teacher",
        page="/teachers",
        relations=(
            _section_rows("classSections", "teacher_id"),
            Relation(
                "classes",
                Class,
                "teacher_id",
                children=(_section_rows("classSections", "class_id"),),
            ),
            Relation("payments", TeacherPayment, "teacher_id"),
        ),
    ),
    EntityType.EXAMS.value: EntitySpec(
        entity_type=EntityType.EXAMS.value,
        model=Exam,
        label="exam",
        page="/exams",
        relations=(
            Relation("results", ExamResult, "exam_id"),
        ),
    ),
    EntityType.STUDENT_PAYMENTS.value: EntitySpec(
        entity_type=EntityType.STUDENT_PAYMENTS.value,
        model=StudentPayment,
        label="student payment",
        page="/finance/payments",
    ),
    EntityType.TEACHER_PAYMENTS.value: EntitySpec(
        entity_type=EntityType.TEACHER_PAYMENTS.value,
        model=TeacherPayment,
        label="teacher payment",
        page="/finance/salaries",
    ),
}


def get_entity_spec(entity_type: str) -> EntitySpec:
    try:
        return ENTITY_SPECS[str(getattr(entity_type, "value", entity_type))]
    except KeyError:
        raise ConfigurationError(f"Unknown entity type {entity_type!r}") from None
