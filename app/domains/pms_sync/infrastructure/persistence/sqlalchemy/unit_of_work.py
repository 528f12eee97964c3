"""
Unit of work over an AsyncSession.
"""

from sqlalchemy.ext.asyncio import AsyncSession


class SQLAlchemyUnitOfWork:
    """Implements IUnitOfWork by committing the request session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
