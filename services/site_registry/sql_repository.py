from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    case,
    create_engine,
    delete,
    select,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from services.common.clock import ensure_utc
from services.site_registry.errors import SiteStorageError
from services.site_registry.models import SiteRecord, SiteSummary
from services.site_registry.validation import ensure_html, ensure_metadata, ensure_valid_site_id


metadata_obj = MetaData()

sites_table = Table(
    "sites",
    metadata_obj,
    Column("site_id", String, primary_key=True),
    Column("html", Text, nullable=False),
    Column("metadata", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("html <> ''", name="ck_sites_html_not_empty"),
    CheckConstraint("updated_at >= created_at", name="ck_sites_updated_after_created"),
)

_SUMMARY_COLUMNS = [
    sites_table.c.site_id,
    sites_table.c["metadata"],
    sites_table.c.created_at,
    sites_table.c.updated_at,
]

# dialects with a native INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS: Dict[str, Callable[..., Any]] = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

_IN_MEMORY_SQLITE = {"sqlite://", "sqlite:///:memory:"}


def create_site_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in _IN_MEMORY_SQLITE:
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def _summary_from_row(row: Mapping[str, Any]) -> SiteSummary:
    return SiteSummary(
        site_id=row["site_id"],
        metadata=row["metadata"] or {},
        created_at=ensure_utc(row["created_at"]),
        updated_at=ensure_utc(row["updated_at"]),
    )


def _record_from_row(row: Mapping[str, Any]) -> SiteRecord:
    return SiteRecord(
        site_id=row["site_id"],
        html=row["html"],
        metadata=row["metadata"] or {},
        created_at=ensure_utc(row["created_at"]),
        updated_at=ensure_utc(row["updated_at"]),
    )


class SqlSiteRepository:
    """Site storage on a SQL database through SQLAlchemy Core.

    Upserts are a single ``INSERT ... ON CONFLICT (site_id) DO UPDATE``
    statement, so the database serializes concurrent writers to one site.
    """

    def __init__(self, engine: Engine) -> None:
        dialect = engine.dialect.name
        if dialect not in _UPSERT_INSERTS:
            raise ValueError(f"Unsupported database dialect for site storage: {dialect!r}")
        self._engine = engine
        self._insert = _UPSERT_INSERTS[dialect]

    @classmethod
    def from_url(cls, url: str) -> "SqlSiteRepository":
        return cls(create_site_engine(url))

    @property
    def engine(self) -> Engine:
        return self._engine

    def init_schema(self) -> None:
        try:
            metadata_obj.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise SiteStorageError("Failed to initialize site storage") from exc

    def dispose(self) -> None:
        self._engine.dispose()

    def upsert(
        self,
        *,
        site_id: str,
        html: str,
        metadata: Dict[str, Any],
        now: datetime,
    ) -> SiteRecord:
        ensure_valid_site_id(site_id)
        ensure_html(html)
        metadata = ensure_metadata(metadata)
        now = ensure_utc(now)

        stmt = self._insert(sites_table).values(
            {
                "site_id": site_id,
                "html": html,
                "metadata": metadata,
                "created_at": now,
                "updated_at": now,
            }
        )
        excluded = stmt.excluded
        stmt = stmt.on_conflict_do_update(
            index_elements=[sites_table.c.site_id],
            set_={
                "html": excluded.html,
                "metadata": excluded["metadata"],
                # a writer stamped before the row was created must not move updated_at behind it
                "updated_at": case(
                    (excluded.updated_at < sites_table.c.created_at, sites_table.c.created_at),
                    else_=excluded.updated_at,
                ),
            },
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(stmt)
                row = (
                    conn.execute(select(sites_table).where(sites_table.c.site_id == site_id))
                    .mappings()
                    .one()
                )
        except SQLAlchemyError as exc:
            raise SiteStorageError(f"Failed to upsert site {site_id!r}") from exc
        return _record_from_row(row)

    def get(self, site_id: str) -> Optional[SiteRecord]:
        try:
            with self._engine.connect() as conn:
                row = (
                    conn.execute(select(sites_table).where(sites_table.c.site_id == site_id))
                    .mappings()
                    .first()
                )
        except SQLAlchemyError as exc:
            raise SiteStorageError(f"Failed to load site {site_id!r}") from exc
        return _record_from_row(row) if row else None

    def get_summary(self, site_id: str) -> Optional[SiteSummary]:
        try:
            with self._engine.connect() as conn:
                row = (
                    conn.execute(select(*_SUMMARY_COLUMNS).where(sites_table.c.site_id == site_id))
                    .mappings()
                    .first()
                )
        except SQLAlchemyError as exc:
            raise SiteStorageError(f"Failed to load site info {site_id!r}") from exc
        return _summary_from_row(row) if row else None

    def list_summaries(self) -> List[SiteSummary]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(select(*_SUMMARY_COLUMNS)).mappings().all()
        except SQLAlchemyError as exc:
            raise SiteStorageError("Failed to list sites") from exc
        return [_summary_from_row(row) for row in rows]

    def delete(self, site_id: str) -> bool:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(delete(sites_table).where(sites_table.c.site_id == site_id))
        except SQLAlchemyError as exc:
            raise SiteStorageError(f"Failed to delete site {site_id!r}") from exc
        return result.rowcount > 0
