# mira_memory/storage/sql.py
"""
SQL storage backend (SQLAlchemy async ORM).

Persists the logical schema to any async database URL; the default is a
local SQLite file through aiosqlite:

    backend = SQLBackend("sqlite+aiosqlite:///mira.db")
    await backend.initialize()

Related ids, metadata and tags are JSON columns. Timestamps are written
timezone-aware and normalized back to UTC on read, because SQLite keeps
only the naive value.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    delete,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from mira_memory.clock import ensure_utc
from mira_memory.config import DEFAULT_DATABASE_URL
from mira_memory.exceptions import StorageError
from mira_memory.memory.models import (
    DomainDoc,
    LinkType,
    Memory,
    MemoryLink,
    MemoryMetadata,
    MemoryType,
)
from mira_memory.tools.models import ToolCooccurrence, ToolState, ordered_pair

logger = logging.getLogger(__name__)

Base = declarative_base()


# =============================================================================
# ORM Models
# =============================================================================


class MemoryRow(Base):
    """Long-term memory with a decaying strength checkpoint."""

    __tablename__ = "mira_memories"
    __table_args__ = (
        Index("idx_mira_memories_owner", "owner"),
        Index("idx_mira_memories_strength", "strength"),
        Index("idx_mira_memories_type", "memory_type"),
    )

    id = Column(String(64), primary_key=True)
    owner = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    memory_type = Column(String(32), nullable=False, default=MemoryType.EPISODIC.value)
    strength = Column(Float, nullable=False, default=1.0)
    importance = Column(Float, nullable=False, default=0.5)
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_accessed = Column(DateTime(timezone=True), nullable=False)
    checkpoint_at = Column(DateTime(timezone=True), nullable=False)
    access_count = Column(Integer, nullable=False, default=1)
    related_memories = Column(JSON, nullable=False, default=list)
    meta = Column("metadata", JSON, nullable=False, default=dict)
    tags = Column(JSON, nullable=False, default=list)


class MemoryLinkRow(Base):
    """Directed link between two memories."""

    __tablename__ = "mira_memory_links"

    source_id = Column(String(64), primary_key=True)
    target_id = Column(String(64), primary_key=True)
    link_type = Column(String(32), nullable=False, default=LinkType.RELATED.value)
    strength = Column(Float, nullable=False, default=0.5)
    created_at = Column(DateTime(timezone=True), nullable=False)


class DomainDocRow(Base):
    """Permanent reference document."""

    __tablename__ = "mira_domaindocs"
    __table_args__ = (Index("idx_mira_domaindocs_owner", "owner"),)

    id = Column(String(64), primary_key=True)
    owner = Column(String(255), nullable=False)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    doc_type = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class ToolStateRow(Base):
    """Activation state of one tool in one conversation."""

    __tablename__ = "mira_tool_state"
    __table_args__ = (
        Index("idx_tool_state_owner", "owner"),
        Index("idx_tool_state_enabled", "enabled"),
    )

    tool_name = Column(String(128), primary_key=True)
    owner = Column(String(255), primary_key=True)
    last_used = Column(DateTime(timezone=True), nullable=True)
    use_count = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=False)
    turns_since_use = Column(Integer, nullable=False, default=0)
    total_uses = Column(Integer, nullable=False, default=0)
    meta = Column("metadata", JSON, nullable=False, default=dict)


class ToolCooccurrenceRow(Base):
    """Pairwise tool usage counter (pair stored in sorted order)."""

    __tablename__ = "mira_tool_cooccurrence"

    tool_a = Column(String(128), primary_key=True)
    tool_b = Column(String(128), primary_key=True)
    owner = Column(String(255), primary_key=True)
    count = Column(Integer, nullable=False, default=1)


# =============================================================================
# Row <-> model conversion
# =============================================================================


def _utc(value: datetime | None) -> datetime | None:
    return ensure_utc(value) if value is not None else None


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _memory_from_row(row: MemoryRow) -> Memory:
    return Memory(
        id=row.id,
        owner=row.owner,
        content=row.content,
        memory_type=MemoryType(row.memory_type),
        strength=row.strength,
        importance=row.importance,
        created_at=_utc(row.created_at),
        last_accessed=_utc(row.last_accessed),
        checkpoint_at=_utc(row.checkpoint_at),
        access_count=row.access_count,
        related_ids=list(row.related_memories or []),
        metadata=MemoryMetadata.model_validate(row.meta or {}),
        tags=list(row.tags or []),
    )


def _link_from_row(row: MemoryLinkRow) -> MemoryLink:
    return MemoryLink(
        source_id=row.source_id,
        target_id=row.target_id,
        link_type=LinkType(row.link_type),
        strength=row.strength,
        created_at=_utc(row.created_at),
    )


def _doc_from_row(row: DomainDocRow) -> DomainDoc:
    return DomainDoc(
        id=row.id,
        owner=row.owner,
        title=row.title,
        content=row.content,
        doc_type=row.doc_type,
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
    )


def _tool_state_from_row(row: ToolStateRow) -> ToolState:
    return ToolState(
        name=row.tool_name,
        owner=row.owner,
        last_used=_utc(row.last_used),
        use_count=row.use_count,
        enabled=bool(row.enabled),
        turns_since_use=row.turns_since_use,
        total_uses=row.total_uses,
        metadata=dict(row.meta or {}),
    )


# =============================================================================
# SQL Backend
# =============================================================================


class SQLBackend:
    """
    Async SQL implementation of ``MemoryBackend`` and ``ToolStateBackend``.

    Construction never touches the database; ``initialize()`` creates the
    schema and is where a misconfigured store surfaces as ``StorageError``.
    """

    def __init__(self, database_url: str | None = None, echo: bool = False):
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def initialized(self) -> bool:
        return self._sessions is not None

    async def initialize(self) -> None:
        """Connect and create tables. Raises ``StorageError`` on failure."""
        if self.initialized:
            return

        kwargs: dict = {"echo": self._echo}
        if ":memory:" in self.database_url or self.database_url.endswith("://"):
            # One shared connection, otherwise every checkout sees a fresh empty database
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}

        try:
            engine = create_async_engine(self.database_url, **kwargs)
        except (SQLAlchemyError, ImportError, ValueError) as e:
            raise StorageError(f"Invalid database URL {self.database_url!r}: {e}") from e

        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            raise StorageError(f"Failed to initialize store at {self.database_url!r}: {e}") from e

        self._engine = engine
        self._sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        logger.info(f"SQL backend initialized at {self.database_url}")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None

    def _session(self) -> AsyncSession:
        if self._sessions is None:
            raise StorageError("SQLBackend not initialized")
        return self._sessions()

    # --- Memories ---

    async def add_memory(self, memory: Memory) -> None:
        async with self._session() as session, session.begin():
            session.add(
                MemoryRow(
                    id=memory.id,
                    owner=memory.owner,
                    content=memory.content,
                    memory_type=memory.memory_type.value,
                    strength=memory.strength,
                    importance=memory.importance,
                    created_at=memory.created_at,
                    last_accessed=memory.last_accessed,
                    checkpoint_at=memory.checkpoint_at,
                    access_count=memory.access_count,
                    related_memories=list(memory.related_ids),
                    meta=memory.metadata.to_json(),
                    tags=list(memory.tags),
                )
            )

    async def fetch_memory(self, memory_id: str) -> Memory | None:
        async with self._session() as session:
            row = await session.get(MemoryRow, memory_id)
            return _memory_from_row(row) if row else None

    async def query_memories(
        self,
        owner: str | None = None,
        contains: str | None = None,
        memory_types: list[MemoryType] | None = None,
    ) -> list[Memory]:
        stmt = select(MemoryRow)
        if owner is not None:
            stmt = stmt.where(MemoryRow.owner == owner)
        if contains:
            stmt = stmt.where(MemoryRow.content.ilike(f"%{_escape_like(contains)}%", escape="\\"))
        if memory_types:
            stmt = stmt.where(MemoryRow.memory_type.in_([MemoryType(t).value for t in memory_types]))

        async with self._session() as session:
            result = await session.execute(stmt)
            return [_memory_from_row(row) for row in result.scalars()]

    async def checkpoint_memory(
        self,
        memory_id: str,
        strength: float,
        checkpoint_at: datetime,
        last_accessed: datetime | None = None,
        access_count: int | None = None,
    ) -> bool:
        values: dict = {"strength": strength, "checkpoint_at": checkpoint_at}
        if last_accessed is not None:
            values["last_accessed"] = last_accessed
        if access_count is not None:
            values["access_count"] = access_count

        async with self._session() as session, session.begin():
            result = await session.execute(update(MemoryRow).where(MemoryRow.id == memory_id).values(**values))
            return result.rowcount > 0

    async def set_importance(self, memory_id: str, importance: float) -> bool:
        async with self._session() as session, session.begin():
            result = await session.execute(
                update(MemoryRow).where(MemoryRow.id == memory_id).values(importance=importance)
            )
            return result.rowcount > 0

    async def delete_memory(self, memory_id: str) -> bool:
        async with self._session() as session, session.begin():
            result = await session.execute(delete(MemoryRow).where(MemoryRow.id == memory_id))
            await session.execute(
                delete(MemoryLinkRow).where(
                    or_(MemoryLinkRow.source_id == memory_id, MemoryLinkRow.target_id == memory_id)
                )
            )
            return result.rowcount > 0

    # --- Links ---

    async def upsert_link(self, link: MemoryLink) -> None:
        async with self._session() as session, session.begin():
            await session.merge(
                MemoryLinkRow(
                    source_id=link.source_id,
                    target_id=link.target_id,
                    link_type=link.link_type.value,
                    strength=link.strength,
                    created_at=link.created_at,
                )
            )

    async def fetch_links(
        self,
        source_id: str,
        link_type: LinkType | None = None,
    ) -> list[MemoryLink]:
        stmt = select(MemoryLinkRow).where(MemoryLinkRow.source_id == source_id)
        if link_type is not None:
            stmt = stmt.where(MemoryLinkRow.link_type == LinkType(link_type).value)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_link_from_row(row) for row in result.scalars()]

    # --- Domain docs ---

    async def upsert_domain_doc(self, doc: DomainDoc) -> DomainDoc:
        async with self._session() as session, session.begin():
            row = await session.get(DomainDocRow, doc.id)
            if row is None:
                row = DomainDocRow(
                    id=doc.id,
                    owner=doc.owner,
                    title=doc.title,
                    content=doc.content,
                    doc_type=doc.doc_type,
                    created_at=doc.created_at,
                    updated_at=doc.updated_at,
                )
                session.add(row)
            else:
                row.content = doc.content
                row.updated_at = doc.updated_at
                if doc.doc_type is not None:
                    row.doc_type = doc.doc_type
            await session.flush()
            return _doc_from_row(row)

    async def list_domain_docs(self, owner: str) -> list[DomainDoc]:
        stmt = (
            select(DomainDocRow)
            .where(DomainDocRow.owner == owner)
            .order_by(func.coalesce(DomainDocRow.updated_at, DomainDocRow.created_at).desc())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_doc_from_row(row) for row in result.scalars()]

    async def delete_domain_doc(self, doc_id: str) -> bool:
        async with self._session() as session, session.begin():
            result = await session.execute(delete(DomainDocRow).where(DomainDocRow.id == doc_id))
            return result.rowcount > 0

    # --- Tool state ---

    async def fetch_tool_state(self, owner: str, tool_name: str) -> ToolState | None:
        async with self._session() as session:
            row = await session.get(ToolStateRow, (tool_name, owner))
            return _tool_state_from_row(row) if row else None

    async def save_tool_state(self, state: ToolState) -> None:
        async with self._session() as session, session.begin():
            await session.merge(
                ToolStateRow(
                    tool_name=state.name,
                    owner=state.owner,
                    last_used=state.last_used,
                    use_count=state.use_count,
                    enabled=state.enabled,
                    turns_since_use=state.turns_since_use,
                    total_uses=state.total_uses,
                    meta=dict(state.metadata),
                )
            )

    async def list_tool_states(
        self,
        owner: str | None = None,
        enabled: bool | None = None,
    ) -> list[ToolState]:
        stmt = select(ToolStateRow)
        if owner is not None:
            stmt = stmt.where(ToolStateRow.owner == owner)
        if enabled is not None:
            stmt = stmt.where(ToolStateRow.enabled == enabled)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_tool_state_from_row(row) for row in result.scalars()]

    async def increment_cooccurrence(self, owner: str, tool_a: str, tool_b: str) -> int:
        first, second = ordered_pair(tool_a, tool_b)
        async with self._session() as session, session.begin():
            row = await session.get(ToolCooccurrenceRow, (first, second, owner))
            if row is None:
                row = ToolCooccurrenceRow(tool_a=first, tool_b=second, owner=owner, count=1)
                session.add(row)
            else:
                row.count += 1
            return row.count

    async def list_cooccurrences(self, owner: str, tool_name: str) -> list[ToolCooccurrence]:
        stmt = select(ToolCooccurrenceRow).where(
            ToolCooccurrenceRow.owner == owner,
            or_(ToolCooccurrenceRow.tool_a == tool_name, ToolCooccurrenceRow.tool_b == tool_name),
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                ToolCooccurrence(tool_a=row.tool_a, tool_b=row.tool_b, owner=row.owner, count=row.count)
                for row in result.scalars()
            ]
