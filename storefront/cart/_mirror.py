"""
Cart mirror — the client's last known copy of the server cart.

    mirror = CartMirror(SqlTier(session_factory))
    await mirror.load()            # restore last snapshot, if any
    await mirror.replace(cart)     # after every successful fetch/mutation

The server stays authoritative: the mirror is replaced wholesale, never
patched, and a restored snapshot is only a placeholder until the next fetch.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol

from kungfu import Result, Ok, Error
from pydantic import ValidationError
from sqlalchemy import DateTime, String, Text, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from storefront._types import utc_now
from storefront.cart._types import MirrorError
from storefront.schema import Cart


logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Tier(Protocol):
    """
    Snapshot storage.

    Values are opaque strings (serialized carts). All methods return
    Result; a miss is Ok(None).
    """

    @property
    def name(self) -> str: ...

    async def get(self, key: str) -> Result[str | None, MirrorError]: ...

    async def set(self, key: str, value: str) -> Result[None, MirrorError]: ...

    async def delete(self, key: str) -> Result[bool, MirrorError]: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Tier
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryTier:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def get(self, key: str) -> Result[str | None, MirrorError]:
        return Ok(self._data.get(key))

    async def set(self, key: str, value: str) -> Result[None, MirrorError]:
        self._data[key] = value
        return Ok(None)

    async def delete(self, key: str) -> Result[bool, MirrorError]:
        return Ok(self._data.pop(key, None) is not None)


# ═══════════════════════════════════════════════════════════════════════════════
# File Tier — one JSON file per key
# ═══════════════════════════════════════════════════════════════════════════════


class FileTier:
    """
    Snapshots as `<directory>/<key>.json`.

    Note: file IO runs in a worker thread; the event loop never blocks.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def name(self) -> str:
        return "file"

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    async def get(self, key: str) -> Result[str | None, MirrorError]:
        path = self._path(key)
        try:
            if not path.exists():
                return Ok(None)
            return Ok(await asyncio.to_thread(path.read_text, encoding="utf-8"))
        except OSError as e:
            return Error(MirrorError(f"Failed to read {path}: {e}", e))

    async def set(self, key: str, value: str) -> Result[None, MirrorError]:
        path = self._path(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_text, value, encoding="utf-8")
            return Ok(None)
        except OSError as e:
            return Error(MirrorError(f"Failed to write {path}: {e}", e))

    async def delete(self, key: str) -> Result[bool, MirrorError]:
        path = self._path(key)
        try:
            if not path.exists():
                return Ok(False)
            await asyncio.to_thread(path.unlink)
            return Ok(True)
        except OSError as e:
            return Error(MirrorError(f"Failed to delete {path}: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# SQL Tier — SQLAlchemy async
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class SnapshotTable(Base):
    __tablename__ = "cart_snapshots"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


async def create_snapshot_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create the snapshot table and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


class SqlTier:
    """
    Snapshots in the `cart_snapshots` table.

    Example:
        session_factory, engine = await create_snapshot_database()
        mirror = CartMirror(SqlTier(session_factory))
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @property
    def name(self) -> str:
        return "sql"

    async def get(self, key: str) -> Result[str | None, MirrorError]:
        try:
            async with self._session_factory() as session:
                stmt = select(SnapshotTable).where(SnapshotTable.key == key)
                result = await session.execute(stmt)
                row = result.scalar_one_or_none()
                return Ok(row.payload if row is not None else None)
        except Exception as e:
            return Error(MirrorError(f"Failed to get: {e}", e))

    async def set(self, key: str, value: str) -> Result[None, MirrorError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(SnapshotTable, key)
                if row is None:
                    session.add(
                        SnapshotTable(key=key, payload=value, updated_at=utc_now())
                    )
                else:
                    row.payload = value
                    row.updated_at = utc_now()
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(MirrorError(f"Failed to set: {e}", e))

    async def delete(self, key: str) -> Result[bool, MirrorError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(SnapshotTable, key)
                if row is None:
                    return Ok(False)
                await session.delete(row)
                await session.commit()
                return Ok(True)
        except Exception as e:
            return Error(MirrorError(f"Failed to delete: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# CartMirror
# ═══════════════════════════════════════════════════════════════════════════════


class CartMirror:
    """
    In-memory cart plus an optional persistent snapshot.

    dump/restore is the serialization boundary: the snapshot is the
    service's own JSON shape, so a restored cart validates like a fetched one.
    """

    def __init__(self, tier: Tier | None = None, *, key: str = "cart") -> None:
        self._tier = tier
        self._key = key
        self._cart = Cart()

    @property
    def cart(self) -> Cart:
        return self._cart

    def dump(self) -> str:
        return self._cart.model_dump_json(by_alias=True)

    def restore(self, raw: str) -> Result[Cart, MirrorError]:
        try:
            cart = Cart.model_validate_json(raw)
        except ValidationError as e:
            return Error(MirrorError("Snapshot is not a valid cart", e))
        self._cart = cart
        return Ok(cart)

    async def replace(self, cart: Cart) -> None:
        """Adopt the server's cart. Snapshot failures are logged, not raised."""
        self._cart = cart
        await self._persist()

    async def reset(self) -> None:
        self._cart = Cart()
        if self._tier is None:
            return
        match await self._tier.delete(self._key):
            case Error(e):
                logger.warning("mirror %s delete failed: %s", self._tier.name, e.message)
            case Ok(_):
                pass

    async def load(self) -> Result[Cart | None, MirrorError]:
        """Restore the last persisted snapshot. Ok(None) when there is none."""
        if self._tier is None:
            return Ok(None)
        match await self._tier.get(self._key):
            case Error(e):
                return Error(e)
            case Ok(None):
                return Ok(None)
            case Ok(raw):
                return self.restore(raw)

    async def _persist(self) -> None:
        if self._tier is None:
            return
        match await self._tier.set(self._key, self.dump()):
            case Error(e):
                logger.warning("mirror %s write failed: %s", self._tier.name, e.message)
            case Ok(_):
                pass


__all__ = (
    "Tier",
    "MemoryTier",
    "FileTier",
    "SnapshotTable",
    "create_snapshot_database",
    "SqlTier",
    "CartMirror",
)
