"""
Batched INSERT ... ON CONFLICT DO UPDATE with per-row fallback.

Each batch runs inside a SAVEPOINT. When a batch fails, its rows are
replayed one at a time so that only the offending rows are reported and the
rest of the batch is still written.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...application.ports import BulkWriteResult
from ...domain.exceptions import PartialPersistenceError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200


def _error_reason(error: SQLAlchemyError) -> str:
    orig = getattr(error, "orig", None)
    return str(orig or error).splitlines()[0]


class BulkUpserter:
    """
    Upserts row dicts for one model keyed on (user_id, pms_type, <key>).

    Args:
        session: Async session; the caller owns the transaction
        model: Declarative model class
        record_type: Label used in failure messages ("patient", ...)
        key_column: Natural key column within (user_id, pms_type)
        batch_size: Rows per statement
    """

    def __init__(
        self,
        session: AsyncSession,
        model: Any,
        record_type: str,
        key_column: str = "external_id",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.session = session
        self.model = model
        self.record_type = record_type
        self.key_column = key_column
        self.batch_size = max(1, batch_size)

    def _statement(self, rows: Sequence[dict[str, Any]]):
        stmt = insert(self.model).values(list(rows))
        conflict = {"user_id", "pms_type", self.key_column}
        update_cols = {
            name: stmt.excluded[name] for name in rows[0].keys() if name not in conflict and name != "created_at"
        }
        update_cols["updated_at"] = datetime.now(UTC)
        return stmt.on_conflict_do_update(
            index_elements=["user_id", "pms_type", self.key_column],
            set_=update_cols,
        )

    async def _count_existing(self, user_id: str, pms_type: str, keys: list[str]) -> int:
        key_attr = getattr(self.model, self.key_column)
        result = await self.session.execute(
            select(func.count())
            .select_from(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.pms_type == pms_type,
                key_attr.in_(keys),
            )
        )
        return int(result.scalar_one())

    async def _write(self, rows: Sequence[dict[str, Any]]) -> None:
        async with self.session.begin_nested():
            await self.session.execute(self._statement(rows))

    async def upsert(self, user_id: str, pms_type: str, rows: list[dict[str, Any]]) -> BulkWriteResult:
        # ON CONFLICT cannot touch the same row twice in one statement
        unique_rows = list({row[self.key_column]: row for row in rows}.values())
        result = BulkWriteResult()

        for start in range(0, len(unique_rows), self.batch_size):
            batch = unique_rows[start : start + self.batch_size]
            keys = [row[self.key_column] for row in batch]
            existing = await self._count_existing(user_id, pms_type, keys)

            try:
                await self._write(batch)
                result = result.merge(BulkWriteResult(written=len(batch), inserted=len(batch) - existing))
                continue
            except SQLAlchemyError as e:
                logger.warning(
                    f"Batch upsert of {len(batch)} {self.record_type} rows failed ({_error_reason(e)}), "
                    f"retrying row by row"
                )

            result = result.merge(await self._write_rows(user_id, pms_type, batch))

        logger.debug(
            f"Upserted {result.written}/{len(unique_rows)} {self.record_type} rows "
            f"({result.inserted} new, {len(result.failures)} failed)"
        )
        return result

    async def _write_rows(self, user_id: str, pms_type: str, rows: Sequence[dict[str, Any]]) -> BulkWriteResult:
        result = BulkWriteResult()
        for row in rows:
            key = row[self.key_column]
            existed = await self._count_existing(user_id, pms_type, [key]) > 0
            try:
                await self._write([row])
            except SQLAlchemyError as e:
                failure = PartialPersistenceError(self.record_type, str(key), _error_reason(e))
                logger.error(failure.message)
                result.failures.append(failure)
                continue
            result.written += 1
            if not existed:
                result.inserted += 1
        return result
