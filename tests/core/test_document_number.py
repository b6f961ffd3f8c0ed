from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.documents.number_generator import DocumentNumberGenerator


class TestDocumentNumberGenerator:
    """Tests for payment number generation."""

    async def test_generate_first_number(self, db_session: AsyncSession):
        number = await DocumentNumberGenerator(db_session).generate("PAY", year=2026)
        assert number == "PAY-2026-000001"

    async def test_generate_sequential_numbers(self, db_session: AsyncSession):
        generator = DocumentNumberGenerator(db_session)
        numbers = [await generator.generate("PAY", year=2026) for _ in range(3)]

        assert numbers == ["PAY-2026-000001", "PAY-2026-000002", "PAY-2026-000003"]

    async def test_years_have_independent_sequences(self, db_session: AsyncSession):
        generator = DocumentNumberGenerator(db_session)
        first_2026 = await generator.generate("PAY", year=2026)
        first_2027 = await generator.generate("PAY", year=2027)
        second_2026 = await generator.generate("PAY", year=2026)

        assert first_2026 == "PAY-2026-000001"
        assert first_2027 == "PAY-2027-000001"
        assert second_2026 == "PAY-2026-000002"

    async def test_payment_number_uses_payment_year(self, db_session: AsyncSession):
        generator = DocumentNumberGenerator(db_session)

        assert await generator.next_payment_number(date(2025, 12, 31)) == "PAY-2025-000001"
        assert await generator.next_payment_number(date(2026, 1, 1)) == "PAY-2026-000001"
