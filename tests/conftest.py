"""
Pytest configuration for backend tests.

Every test gets its own SQLite file database with foreign keys enforced. API
tests talk to the app in-process over httpx's ASGI transport with `get_db`
pointed at that database.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import httpx
import jwt
import pytest
from httpx import ASGITransport
from sqlalchemy import text

from app.core.database.engine import build_engine, build_session_factory, get_db, init_db
from app.features.access.context import UserContext
from app.features.access.roles import SystemRole
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
from app.features.organizations.models import Organization, OrganizationBinding
from app.features.organizations.store import grant_super_admin
from app.features.users.models import User
from app.main import app


TOKEN_SECRET = "test-only-signing-key-not-verified-by-the-app"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(bind=test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def locked_classes(engine):
    """Make the storage refuse to delete rows from `classes`."""
    async with engine.begin() as conn:
        await conn.execute(text(
            "CREATE TRIGGER lock_classes BEFORE DELETE ON classes "
            "BEGIN SELECT RAISE(ABORT, 'classes are locked'); END"
        ))


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def make_token(user: User, expires_in: timedelta = timedelta(hours=1)) -> str:
    """An Appwrite-shaped JWT; the app decodes it without checking the signature."""
    payload = {"userId": user.appwrite_id, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, TOKEN_SECRET, algorithm="HS256")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user)}"}


def context_for(
    user: User,
    organization_id: Optional[str],
    role: SystemRole,
    can_invite: bool = False,
) -> UserContext:
    return UserContext(
        user_id=user.id,
        email=user.email,
        organization_id=organization_id,
        role=role,
        can_invite=can_invite,
    )


class Seeder:
    """Inserts rows through short-lived sessions so tests see committed state."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def add(self, obj):
        async with self.session_factory() as session:
            session.add(obj)
            await session.commit()
        return obj

    async def get(self, model, ident):
        async with self.session_factory() as session:
            return await session.get(model, ident)

    async def user(self, name: str = "user") -> User:
        n = self._next()
        return await self.add(User(
            appwrite_id=f"aw-{name}-{n}",
            email=f"{name}{n}@example.com",
            name=name.title(),
        ))

    async def organization(self, name: str = "Institute", is_active: bool = True) -> Organization:
        return await self.add(Organization(name=f"{name} {self._next()}", is_active=is_active))

    async def bind(
        self,
        user: User,
        organization: Organization,
        role: SystemRole,
        can_invite: bool = False,
        is_active: bool = True,
    ) -> OrganizationBinding:
        return await self.add(OrganizationBinding(
            user_id=user.id,
            organization_id=organization.id,
            role=role,
            can_invite=can_invite,
            is_active=is_active,
        ))

    async def super_admin(self, user: User) -> OrganizationBinding:
        async with self.session_factory() as session:
            return await grant_super_admin(session, user.id)

    async def member(self, organization: Organization, role: SystemRole, name: str = "member") -> User:
        user = await self.user(name)
        await self.bind(user, organization, role)
        return user

    async def student(self, organization: Organization) -> Student:
        n = self._next()
        return await self.add(Student(organization_id=organization.id, first_name="Student", last_name=str(n)))

    async def teacher(self, organization: Organization) -> Teacher:
        n = self._next()
        return await self.add(Teacher(organization_id=organization.id, first_name="Teacher", last_name=str(n)))

    async def klass(self, organization: Organization, teacher: Optional[Teacher] = None) -> Class:
        return await self.add(Class(
            organization_id=organization.id,
            name=f"Class {self._next()}",
            teacher_id=teacher.id if teacher else None,
        ))

    async def section(
        self,
        organization: Organization,
        teacher: Optional[Teacher] = None,
        klass: Optional[Class] = None,
    ) -> ClassSection:
        return await self.add(ClassSection(
            organization_id=organization.id,
            name=f"Section {self._next()}",
            teacher_id=teacher.id if teacher else None,
            class_id=klass.id if klass else None,
        ))

    async def exam(self, organization: Organization, section: Optional[ClassSection] = None) -> Exam:
        return await self.add(Exam(
            organization_id=organization.id,
            title=f"Exam {self._next()}",
            class_section_id=section.id if section else None,
        ))

    async def enrollment(self, student: Student, section: ClassSection) -> Enrollment:
        return await self.add(Enrollment(student_id=student.id, class_section_id=section.id))

    async def attendance(self, student: Student, section: Optional[ClassSection] = None) -> Attendance:
        return await self.add(Attendance(
            student_id=student.id,
            class_section_id=section.id if section else None,
            attended_on=datetime.now(timezone.utc).date(),
        ))

    async def exam_result(self, exam: Exam, student: Student, score: float = 75.0) -> ExamResult:
        return await self.add(ExamResult(exam_id=exam.id, student_id=student.id, score=score))

    async def student_payment(self, student: Student, amount: str = "100.00") -> StudentPayment:
        return await self.add(StudentPayment(
            organization_id=student.organization_id,
            student_id=student.id,
            amount=Decimal(amount),
        ))

    async def teacher_payment(self, teacher: Teacher, amount: str = "1500.00") -> TeacherPayment:
        return await self.add(TeacherPayment(
            organization_id=teacher.organization_id,
            teacher_id=teacher.id,
            amount=Decimal(amount),
        ))


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)
