from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import MAX_INTEGER, EnvelopeTable
from envelopes.exceptions import (
    EmptyCollectionError,
    EnvelopeNotFoundError,
    InsufficientBudgetError,
    InvalidTransferError,
    StorageError,
)

logger = logging.getLogger(__name__)

MAX_ENVELOPE_ID = MAX_INTEGER


def parse_envelope_id(value: str) -> Optional[int]:
    """
    Convert a path parameter to an envelope primary key.
    Returns None for anything that cannot match a row.
    """
    if not (isinstance(value, str) and value.isascii() and value.isdigit()):
        return None
    pk = int(value)
    if pk < 1 or pk > MAX_ENVELOPE_ID:
        return None
    return pk


class EnvelopeRepositoryPg:
    """CRUD and transfer operations over the `envelopes` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def _unit_of_work(self, action: str) -> AsyncIterator[None]:
        """
        Run the enclosed statements in the session's transaction and commit.
        Any failure rolls back; driver errors surface as StorageError.
        """
        try:
            yield
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.exception(f"Error while {action}: {e}")
            raise StorageError(action) from e
        except Exception:
            await self._session.rollback()
            raise

    async def list_all(self) -> list[EnvelopeTable]:
        async with self._unit_of_work("listing envelopes"):
            res = await self._session.execute(select(EnvelopeTable).order_by(EnvelopeTable.id))
            envelopes = list(res.scalars().all())
        if not envelopes:
            raise EmptyCollectionError()
        return envelopes

    async def get_by_id(self, envelope_id: str) -> EnvelopeTable:
        pk = parse_envelope_id(envelope_id)
        if pk is None:
            raise EnvelopeNotFoundError(envelope_id)
        async with self._unit_of_work(f"fetching envelope {pk}"):
            envelope = await self._session.get(EnvelopeTable, pk)
        if envelope is None:
            raise EnvelopeNotFoundError(envelope_id)
        return envelope

    async def create(self, title: str, budget: int) -> EnvelopeTable:
        envelope = EnvelopeTable(title=title, budget=budget)
        async with self._unit_of_work("creating envelope"):
            self._session.add(envelope)
            await self._session.flush()
        logger.info(f"Created envelope {envelope.id} ({envelope.title!r}, budget={envelope.budget})")
        return envelope

    async def update(self, envelope_id: str, title: str, budget: int) -> EnvelopeTable:
        pk = parse_envelope_id(envelope_id)
        if pk is None:
            raise EnvelopeNotFoundError(envelope_id)
        async with self._unit_of_work(f"updating envelope {pk}"):
            envelope = await self._session.get(EnvelopeTable, pk)
            if envelope is None:
                raise EnvelopeNotFoundError(envelope_id)
            envelope.title = title
            envelope.budget = budget
        logger.info(f"Updated envelope {pk} ({title!r}, budget={budget})")
        return envelope

    async def delete(self, envelope_id: str) -> None:
        pk = parse_envelope_id(envelope_id)
        if pk is None:
            raise EnvelopeNotFoundError(envelope_id)
        async with self._unit_of_work(f"deleting envelope {pk}"):
            envelope = await self._session.get(EnvelopeTable, pk)
            if envelope is None:
                raise EnvelopeNotFoundError(envelope_id)
            await self._session.delete(envelope)
        logger.info(f"Deleted envelope {pk}")

    async def transfer(self, from_id: str, to_id: str, amount: int) -> Tuple[EnvelopeTable, EnvelopeTable]:
        """
        Move `amount` from one envelope's budget to another's.

        Both rows are locked (SELECT ... FOR UPDATE, in id order) and the
        debit and credit are committed in a single transaction, so a
        failure at any point leaves both budgets untouched.
        """
        source_pk = parse_envelope_id(from_id)
        if source_pk is None:
            raise EnvelopeNotFoundError(from_id)
        dest_pk = parse_envelope_id(to_id)
        if dest_pk is None:
            raise EnvelopeNotFoundError(to_id)
        if source_pk == dest_pk:
            raise InvalidTransferError("Cannot transfer an envelope's budget to itself", envelope_id=source_pk)
        if amount <= 0:
            raise InvalidTransferError("Transfer amount must be positive", amount=amount)

        async with self._unit_of_work(f"transferring {amount} from envelope {source_pk} to {dest_pk}"):
            stmt = (
                select(EnvelopeTable)
                .where(EnvelopeTable.id.in_((source_pk, dest_pk)))
                .order_by(EnvelopeTable.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            res = await self._session.execute(stmt)
            locked = {envelope.id: envelope for envelope in res.scalars().all()}

            source = locked.get(source_pk)
            if source is None:
                raise EnvelopeNotFoundError(from_id)
            dest = locked.get(dest_pk)
            if dest is None:
                raise EnvelopeNotFoundError(to_id)
            if source.budget < amount:
                raise InsufficientBudgetError(source_pk, source.budget, amount)
            if dest.budget > MAX_INTEGER - amount:
                raise InvalidTransferError(
                    f"Envelope {dest_pk} cannot hold a budget above {MAX_INTEGER}",
                    envelope_id=dest_pk,
                    budget=dest.budget,
                    amount=amount,
                )

            await self._session.execute(
                update(EnvelopeTable)
                .where(EnvelopeTable.id == source_pk)
                .values(budget=EnvelopeTable.budget - amount)
                .execution_options(synchronize_session=False)
            )
            await self._session.execute(
                update(EnvelopeTable)
                .where(EnvelopeTable.id == dest_pk)
                .values(budget=EnvelopeTable.budget + amount)
                .execution_options(synchronize_session=False)
            )

        async with self._unit_of_work(f"reloading envelopes {source_pk} and {dest_pk}"):
            await self._session.refresh(source)
            await self._session.refresh(dest)
        logger.info(f"Transferred {amount} from envelope {source_pk} to {dest_pk}")
        return source, dest
