"""
Finance SQLAlchemy models: student fee payments and teacher salary payments.
"""
from datetime import date
from decimal import Decimal
from sqlalchemy import String, ForeignKey, Date, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, SoftDeleteMixin, generate_ulid


class StudentPayment(Base, TimestampMixin, SoftDeleteMixin):
    """A fee payment received from a student."""
    __tablename__ = "student_payments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_on: Mapped[date | None] = mapped_column(Date)
    reference: Mapped[str | None] = mapped_column(String(100))

    @property
    def label(self) -> str:
        return f"Payment {self.reference or self.id} ({self.amount})"

    def __repr__(self):
        return f"<StudentPayment(id={self.id}, student_id={self.student_id}, amount={self.amount})>"


class TeacherPayment(Base, TimestampMixin, SoftDeleteMixin):
    """A salary payment made to a teacher."""
    __tablename__ = "teacher_payments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teachers.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_on: Mapped[date | None] = mapped_column(Date)
    reference: Mapped[str | None] = mapped_column(String(100))

    @property
    def label(self) -> str:
        return f"Salary {self.reference or self.id} ({self.amount})"

    def __repr__(self):
        return f"<TeacherPayment(id={self.id}, teacher_id={self.teacher_id}, amount={self.amount})>"
