"""Catalog store over the async SQLAlchemy session factory.

Four collections (products, parties, invoices, settings) each expose point
reads, writes and ordered/paginated scans. `transaction()` is the atomic
multi-collection unit used by the stock ledger. Live queries re-run after
every committed write that touches their collection and push the fresh
results to their callback; the billing core itself never subscribes.

Writes are serialized by an in-process lock, so do not call collection
write methods from inside `transaction()`; use the yielded session instead.
"""
import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from typing import (
    Any, AsyncIterator, Callable, Dict, Generic, Iterable, List, Mapping,
    Optional, Sequence, Type, TypeVar, Union,
)

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from distbill.core.exceptions import RecordNotFoundError
from distbill.database import Base
from distbill.models.company import CompanyProfile, COMPANY_PROFILE_ID
from distbill.models.invoice import Invoice
from distbill.models.party import Party
from distbill.models.product import Product


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

Where = Union[None, Any, Sequence[Any]]

PRODUCTS = "products"
PARTIES = "parties"
INVOICES = "invoices"
SETTINGS = "settings"


def _conditions(where: Where) -> List[Any]:
    if where is None:
        return []
    if isinstance(where, (list, tuple)):
        return list(where)
    return [where]


class LiveQuery:
    """A query whose results are pushed again after each relevant write."""

    def __init__(
        self,
        collection: "Collection",
        callback: Callable[[List[Any]], Any],
        where: Where = None,
        limit: Optional[int] = None,
        order_by: Any = None,
        offset: int = 0,
    ):
        self.collection = collection
        self.callback = callback
        self.where = where
        self.limit = limit
        self.order_by = order_by
        self.offset = offset
        self.active = True
        self.results: List[Any] = []

    async def refresh(self) -> List[Any]:
        self.results = await self.collection.query(
            where=self.where,
            limit=self.limit,
            order_by=self.order_by,
            offset=self.offset,
        )
        outcome = self.callback(self.results)
        if inspect.isawaitable(outcome):
            await outcome
        return self.results

    def cancel(self) -> None:
        self.active = False
        self.collection.store._unsubscribe(self)


class Collection(Generic[ModelT]):
    """CRUD and scans over one model."""

    def __init__(
        self,
        store: "CatalogStore",
        model: Type[ModelT],
        name: str,
        load_options: Sequence[Any] = (),
    ):
        self.store = store
        self.model = model
        self.name = name
        self.load_options = tuple(load_options)

    def _select(self):
        query = select(self.model)
        if self.load_options:
            query = query.options(*self.load_options)
        return query

    async def get(self, record_id: Any) -> Optional[ModelT]:
        """Get record by ID."""
        async with self.store.session() as session:
            return await session.get(self.model, record_id, options=self.load_options or None)

    async def get_or_raise(self, record_id: Any) -> ModelT:
        record = await self.get(record_id)
        if record is None:
            raise RecordNotFoundError(
                f"{self.model.__name__} {record_id} not found",
                details={"collection": self.name, "id": record_id},
            )
        return record

    async def add(self, record: Union[ModelT, Mapping[str, Any]]) -> ModelT:
        """Insert a record (model instance or field mapping) and return it with its id."""
        records = await self.bulk_add([record])
        return records[0]

    async def bulk_add(self, records: Iterable[Union[ModelT, Mapping[str, Any]]]) -> List[ModelT]:
        """Insert many records in one transaction."""
        instances = [r if isinstance(r, self.model) else self.model(**dict(r)) for r in records]
        if not instances:
            return []
        async with self.store.transaction(self.name) as session:
            session.add_all(instances)
            await session.flush()
        return instances

    async def update(self, record_id: Any, partial: Mapping[str, Any]) -> ModelT:
        """Apply a partial update and return the updated record."""
        async with self.store.transaction(self.name) as session:
            record = await session.get(self.model, record_id)
            if record is None:
                raise RecordNotFoundError(
                    f"{self.model.__name__} {record_id} not found",
                    details={"collection": self.name, "id": record_id},
                )
            for key, value in partial.items():
                if key != "id" and hasattr(record, key):
                    setattr(record, key, value)
            await session.flush()
        return record

    async def delete(self, record_id: Any) -> bool:
        """Delete a record; False when it did not exist."""
        async with self.store.transaction(self.name) as session:
            record = await session.get(self.model, record_id)
            if record is None:
                return False
            await session.delete(record)
        return True

    async def query(
        self,
        where: Where = None,
        limit: Optional[int] = None,
        order_by: Any = None,
        offset: int = 0,
    ) -> List[ModelT]:
        """Ordered, paginated scan filtered by SQL expressions."""
        query = self._select()
        conditions = _conditions(where)
        if conditions:
            query = query.where(and_(*conditions))
        if order_by is not None:
            orders = order_by if isinstance(order_by, (list, tuple)) else [order_by]
            query = query.order_by(*orders)
        else:
            query = query.order_by(self.model.id)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        async with self.store.session() as session:
            result = await session.execute(query)
            return list(result.scalars().unique().all())

    async def count(self, where: Where = None) -> int:
        query = select(func.count()).select_from(self.model)
        conditions = _conditions(where)
        if conditions:
            query = query.where(and_(*conditions))
        async with self.store.session() as session:
            return await session.scalar(query) or 0


class CatalogStore:
    """Products, parties, invoices and settings behind one session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._write_lock = asyncio.Lock()
        self._subscriptions: Dict[str, List[LiveQuery]] = {}

        self.products: Collection[Product] = Collection(self, Product, PRODUCTS)
        self.parties: Collection[Party] = Collection(self, Party, PARTIES)
        self.invoices: Collection[Invoice] = Collection(
            self, Invoice, INVOICES, load_options=(selectinload(Invoice.items),)
        )
        self.settings: Collection[CompanyProfile] = Collection(self, CompanyProfile, SETTINGS)

    def collection(self, name: str) -> Collection:
        collections = {
            PRODUCTS: self.products,
            PARTIES: self.parties,
            INVOICES: self.invoices,
            SETTINGS: self.settings,
        }
        try:
            return collections[name]
        except KeyError:
            raise ValueError(f"Unknown collection '{name}'. Valid: {', '.join(collections)}")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session for reads."""
        async with self.session_factory() as session:
            yield session

    @asynccontextmanager
    async def transaction(self, *collections: str) -> AsyncIterator[AsyncSession]:
        """
        Atomic unit of work across collections.

        Commits when the block exits normally, rolls back everything when it
        raises. Subscribers of the named collections (all when none are named)
        are refreshed after the commit.
        """
        async with self._write_lock:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        await self._notify(collections or (PRODUCTS, PARTIES, INVOICES, SETTINGS))

    # ==================== PROFILE ====================

    async def get_profile(self) -> Optional[CompanyProfile]:
        return await self.settings.get(COMPANY_PROFILE_ID)

    # ==================== SUBSCRIPTIONS ====================

    async def subscribe(
        self,
        collection: str,
        callback: Callable[[List[Any]], Any],
        where: Where = None,
        limit: Optional[int] = None,
        order_by: Any = None,
        offset: int = 0,
    ) -> LiveQuery:
        """Register a live query and push its first results immediately."""
        live = LiveQuery(self.collection(collection), callback, where, limit, order_by, offset)
        self._subscriptions.setdefault(collection, []).append(live)
        await live.refresh()
        return live

    def _unsubscribe(self, live: LiveQuery) -> None:
        subscribers = self._subscriptions.get(live.collection.name, [])
        if live in subscribers:
            subscribers.remove(live)

    async def _notify(self, collections: Iterable[str]) -> None:
        for name in collections:
            for live in list(self._subscriptions.get(name, [])):
                if not live.active:
                    continue
                try:
                    await live.refresh()
                except Exception as e:
                    # The write is already committed; a failing listener must not undo it.
                    logger.error(f"Live query on '{name}' failed to refresh: {type(e).__name__}: {e}")
