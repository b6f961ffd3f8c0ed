from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.documents.models import DocumentSequence

PAYMENT_PREFIX = "PAY"


class DocumentNumberGenerator:
    """
    Sequential document numbers: PREFIX-YYYY-NNNNNN, one counter per prefix and year.

        PAY-2026-000001
        PAY-2026-000042
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _locked_sequence(self, prefix: str, year: int) -> DocumentSequence:
        stmt = (
            select(DocumentSequence)
            .where(DocumentSequence.prefix == prefix, DocumentSequence.year == year)
            .with_for_update()
        )
        sequence = (await self.session.execute(stmt)).scalar_one_or_none()
        if sequence is not None:
            return sequence

        self.session.add(DocumentSequence(prefix=prefix, year=year, last_number=0))
        await self.session.flush()
        return (await self.session.execute(stmt)).scalar_one()

    async def generate(self, prefix: str, year: int | None = None) -> str:
        """Next number for ``prefix``; the counter row stays locked until commit."""
        year = year or date.today().year
        sequence = await self._locked_sequence(prefix, year)
        sequence.last_number += 1
        await self.session.flush()
        return f"{prefix}-{year}-{sequence.last_number:06d}"

    async def next_payment_number(self, payment_date: date) -> str:
        """Payment numbers follow the year the money was received."""
        return await self.generate(PAYMENT_PREFIX, payment_date.year)
