"""Student identity as published by the enrollment service."""

from sqlalchemy import BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel


class Student(BaseModel):
    """
    Enrolled student. Owned by the enrollment subsystem; the ledger only reads it.

    Faculty and department are references into the academic catalog, which
    lives outside this database.
    """

    __tablename__ = "students"

    student_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )  # stable identifier, e.g. "STU-2025-000123"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    faculty_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    department_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    # Current period
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)  # "2025/2026"
    semester: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    ledger_accounts: Mapped[list["LedgerAccount"]] = relationship(
        "LedgerAccount", back_populates="student"
    )

    @property
    def full_name(self) -> str:
        """Full name of the student."""
        return f"{self.first_name} {self.last_name}"


# Import at the end to avoid circular imports
from src.modules.ledger.models import LedgerAccount
