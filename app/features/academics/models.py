"""
Academic SQLAlchemy models: students, teachers, classes, sections, exams.

Students, teachers and exams are archivable (SoftDeleteMixin). The rest only
exist as related records of those entities.
"""
from datetime import date
from sqlalchemy import String, ForeignKey, Date, Float, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, SoftDeleteMixin, generate_ulid


class Student(Base, TimestampMixin, SoftDeleteMixin):
    """A learner enrolled at an institute."""
    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))

    __table_args__ = (
        Index("ix_students_name", "last_name", "first_name"),
    )

    @property
    def label(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.first_name} {self.last_name}')>"


class Teacher(Base, TimestampMixin, SoftDeleteMixin):
    """Teaching staff member."""
    __tablename__ = "teachers"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))

    @property
    def label(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Teacher(id={self.id}, name='{self.first_name} {self.last_name}')>"


class Class(Base, TimestampMixin):
    """A course offering, optionally led by a teacher."""
    __tablename__ = "classes"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    teacher_id: Mapped[str | None] = mapped_column(ForeignKey("teachers.id"), index=True)

    def __repr__(self):
        return f"<Class(id={self.id}, name={self.name!r})>"


class ClassSection(Base, TimestampMixin):
    """A scheduled group of a class, taught by one teacher."""
    __tablename__ = "class_sections"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    class_id: Mapped[str | None] = mapped_column(ForeignKey("classes.id"), index=True)
    teacher_id: Mapped[str | None] = mapped_column(ForeignKey("teachers.id"), index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self):
        return f"<ClassSection(id={self.id}, name={self.name!r})>"


class Enrollment(Base, TimestampMixin):
    __tablename__ = "enrollments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id"), nullable=False, index=True)
    class_section_id: Mapped[str] = mapped_column(ForeignKey("class_sections.id"), nullable=False, index=True)


class Attendance(Base, TimestampMixin):
    __tablename__ = "attendances"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id"), nullable=False, index=True)
    class_section_id: Mapped[str | None] = mapped_column(ForeignKey("class_sections.id"), index=True)
    attended_on: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PRESENT")


class Exam(Base, TimestampMixin, SoftDeleteMixin):
    """
    An exam, optionally tied to a class section.

    A section's exams and their results are purged with the section when a
    teacher is cascade-deleted.
    """
    __tablename__ = "exams"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    class_section_id: Mapped[str | None] = mapped_column(ForeignKey("class_sections.id"), index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    exam_date: Mapped[date | None] = mapped_column(Date)

    @property
    def label(self) -> str:
        return self.title

    def __repr__(self):
        return f"<Exam(id={self.id}, title={self.title!r})>"


class ExamResult(Base, TimestampMixin):
    __tablename__ = "exam_results"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    exam_id: Mapped[str] = mapped_column(ForeignKey("exams.id"), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id"), nullable=False, index=True)
    score: Mapped[float | None] = mapped_column(Float)
