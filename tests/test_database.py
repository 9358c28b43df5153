"""
Primary key generation for stored rows.
"""
import pytest

from app.core.database.base import generate_ulid
from app.features.academics.models import Student


def test_generate_ulid_returns_unique_26_char_strings():
    first, second = generate_ulid(), generate_ulid()
    assert isinstance(first, str)
    assert len(first) == 26
    assert first != second


@pytest.mark.anyio
async def test_inserted_rows_get_ulid_primary_keys(seed):
    org = await seed.organization()
    student = await seed.student(org)

    assert len(org.id) == 26
    assert len(student.id) == 26
    assert (await seed.get(Student, student.id)).organization_id == org.id
