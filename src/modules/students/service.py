"""Read-only access to student identities."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError
from src.modules.students.models import Student


class StudentDirectory:
    """Looks up students for the ledger. Never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_student(self, student_id: int) -> Student:
        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student
