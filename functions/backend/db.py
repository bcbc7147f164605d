"""
Database abstraction for Postgres and an in-memory test implementation.

Site content lives in flat tables that are manipulated through generic
select/insert/update/delete calls keyed by table name. Compression sweep
jobs have their own typed helpers.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared import constants
from shared.types import JobStatus


class UnknownTableError(ValueError):
    pass


class DbClient(Protocol):
    """Interface for database access."""

    def select(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...

    def get(self, table: str, row_id: Any) -> Optional[dict]:
        ...

    def insert(self, table: str, values: dict) -> dict:
        ...

    def update(self, table: str, row_id: Any, values: dict) -> Optional[dict]:
        ...

    def delete(self, table: str, ids: Iterable[Any]) -> int:
        ...

    def count(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        since: Optional[datetime] = None,
    ) -> int:
        ...

    def max_display_order(self, table: str, *, filters: Optional[dict] = None) -> int:
        ...

    def create_compression_job(self) -> "JobRecord":
        ...

    def get_job(self, job_id: str) -> Optional["JobRecord"]:
        ...

    def claim_job(self, job_id: str) -> Optional["JobRecord"]:
        ...

    def claim_next_waiting_job(self) -> Optional["JobRecord"]:
        ...

    def update_job_progress(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        stage: Optional[str] = None,
        progress_percent: Optional[float] = None,
        result: Optional[dict] = None,
    ) -> None:
        ...

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        ...


@dataclass
class JobRecord:
    job_id: str
    status: JobStatus
    stage: str = "WAITING"
    progress_percent: float = 0.0
    result: Optional[dict] = None
    locked_at: Optional[float] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "status": self.status.name,
            "stage": self.stage,
            "progress_percent": self.progress_percent,
            "result": self.result,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _table_columns(table: str) -> dict[str, Column]:
    if table not in constants.CRUD_TABLES:
        raise UnknownTableError(f"Unknown table: {table}")
    return {column.name: column for column in Base.metadata.tables[table].columns}


def _check_columns(table: str, values: Iterable[str]) -> None:
    columns = _table_columns(table)
    unknown = sorted(set(values) - set(columns))
    if unknown:
        raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")


def _has_string_id(table: str) -> bool:
    return isinstance(_table_columns(table)["id"].type, String)


def _new_row(table: str, values: dict) -> dict:
    """Fill in generated ids, timestamps and column defaults."""
    _check_columns(table, values)
    row: dict = {}
    for name, column in _table_columns(table).items():
        if name in values:
            row[name] = values[name]
        elif name == "id":
            row[name] = uuid.uuid4().hex if _has_string_id(table) else None
        elif name == "created_at":
            row[name] = _utcnow()
        elif column.default is not None and column.default.is_scalar:
            row[name] = column.default.arg
        else:
            row[name] = None
    return row


def _normalize_value(value: Any) -> Any:
    # SQLite drops tzinfo; every timestamp we store is UTC.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _sort_key(column: str):
    return lambda row: (row.get(column) is None, row.get(column))


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.tables: Dict[str, Dict[Any, dict]] = {
            table: {} for table in constants.CRUD_TABLES
        }
        self.jobs: Dict[str, JobRecord] = {}
        self.locked: set[str] = set()

    def _rows(self, table: str) -> Dict[Any, dict]:
        _table_columns(table)
        return self.tables[table]

    def _matching(self, table: str, filters: Optional[dict]) -> list[dict]:
        filters = filters or {}
        _check_columns(table, filters)
        return [
            row
            for row in self._rows(table).values()
            if all(row.get(key) == value for key, value in filters.items())
        ]

    def select(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        rows = self._matching(table, filters)
        if order_by:
            _check_columns(table, [order_by])
            rows = sorted(rows, key=_sort_key(order_by), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return [dict(row) for row in rows]

    def get(self, table: str, row_id: Any) -> Optional[dict]:
        row = self._rows(table).get(row_id)
        return dict(row) if row else None

    def insert(self, table: str, values: dict) -> dict:
        rows = self._rows(table)
        row = _new_row(table, values)
        if row["id"] is None:
            row["id"] = max(rows, default=0) + 1
        if row["id"] in rows:
            raise ValueError(f"Duplicate id {row['id']} for {table}")
        rows[row["id"]] = row
        return dict(row)

    def update(self, table: str, row_id: Any, values: dict) -> Optional[dict]:
        _check_columns(table, values)
        row = self._rows(table).get(row_id)
        if row is None:
            return None
        row.update({key: value for key, value in values.items() if key != "id"})
        return dict(row)

    def delete(self, table: str, ids: Iterable[Any]) -> int:
        rows = self._rows(table)
        removed = 0
        for row_id in set(ids):
            if rows.pop(row_id, None) is not None:
                removed += 1
        return removed

    def count(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        since: Optional[datetime] = None,
    ) -> int:
        rows = self._matching(table, filters)
        if since is not None:
            rows = [
                row
                for row in rows
                if row.get("created_at") is not None and row["created_at"] >= since
            ]
        return len(rows)

    def max_display_order(self, table: str, *, filters: Optional[dict] = None) -> int:
        orders = [row.get("display_order") or 0 for row in self._matching(table, filters)]
        return max(orders, default=0)

    def create_compression_job(self) -> JobRecord:
        record = JobRecord(job_id=uuid.uuid4().hex, status=JobStatus.WAITING)
        self.jobs[record.job_id] = record
        return record

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        return self.jobs.get(job_id)

    def _claim(self, job: JobRecord) -> JobRecord:
        job.status = JobStatus.RUNNING
        job.stage = "CLAIMED"
        job.locked_at = time.time()
        job.updated_at = job.locked_at
        self.locked.add(job.job_id)
        return job

    def claim_job(self, job_id: str) -> Optional[JobRecord]:
        job = self.jobs.get(job_id)
        if not job or job.status != JobStatus.WAITING or job_id in self.locked:
            return None
        return self._claim(job)

    def claim_next_waiting_job(self) -> Optional[JobRecord]:
        for job in self.jobs.values():
            if job.status == JobStatus.WAITING and job.job_id not in self.locked:
                return self._claim(job)
        return None

    def update_job_progress(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        stage: Optional[str] = None,
        progress_percent: Optional[float] = None,
        result: Optional[dict] = None,
    ) -> None:
        job = self.jobs.get(job_id)
        if not job:
            return
        if status:
            job.status = status
        if stage:
            job.stage = stage
        if progress_percent is not None:
            job.progress_percent = progress_percent
        if result is not None:
            job.result = result
        job.updated_at = time.time()

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        now = time.time()
        requeued = 0
        for job in self.jobs.values():
            if (
                job.status == JobStatus.RUNNING
                and job.locked_at
                and now - job.locked_at > lock_timeout_seconds
            ):
                job.status = JobStatus.WAITING
                job.stage = "WAITING"
                job.progress_percent = 0.0
                job.locked_at = None
                job.updated_at = now
                self.locked.discard(job.job_id)
                requeued += 1
        return requeued


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _model(table: str):
        _table_columns(table)
        return TABLE_MODELS[table]

    @staticmethod
    def _to_dict(row) -> dict:
        return {
            column.name: _normalize_value(getattr(row, column.name))
            for column in row.__table__.columns
        }

    def _filtered(self, table: str, filters: Optional[dict]):
        model = self._model(table)
        filters = filters or {}
        _check_columns(table, filters)
        return [getattr(model, key) == value for key, value in filters.items()]

    def select(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        model = self._model(table)
        stmt = select(model).where(*self._filtered(table, filters))
        if order_by:
            _check_columns(table, [order_by])
            column = getattr(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.Session() as session:
            return [self._to_dict(row) for row in session.execute(stmt).scalars()]

    def get(self, table: str, row_id: Any) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(self._model(table), row_id)
            return self._to_dict(row) if row else None

    def insert(self, table: str, values: dict) -> dict:
        model = self._model(table)
        row_values = _new_row(table, values)
        if row_values["id"] is None:
            del row_values["id"]
        with self.Session() as session:
            row = model(**row_values)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_dict(row)

    def update(self, table: str, row_id: Any, values: dict) -> Optional[dict]:
        _check_columns(table, values)
        with self.Session() as session:
            row = session.get(self._model(table), row_id)
            if not row:
                return None
            for key, value in values.items():
                if key != "id":
                    setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return self._to_dict(row)

    def delete(self, table: str, ids: Iterable[Any]) -> int:
        model = self._model(table)
        ids = list(set(ids))
        if not ids:
            return 0
        with self.Session() as session:
            result = session.execute(delete(model).where(model.id.in_(ids)))
            session.commit()
            return result.rowcount or 0

    def count(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        since: Optional[datetime] = None,
    ) -> int:
        model = self._model(table)
        clauses = self._filtered(table, filters)
        if since is not None:
            clauses.append(model.created_at >= since)
        stmt = select(func.count()).select_from(model).where(*clauses)
        with self.Session() as session:
            return session.execute(stmt).scalar_one()

    def max_display_order(self, table: str, *, filters: Optional[dict] = None) -> int:
        model = self._model(table)
        stmt = select(func.max(model.display_order)).where(
            *self._filtered(table, filters)
        )
        with self.Session() as session:
            return session.execute(stmt).scalar_one_or_none() or 0

    def _to_job_record(self, job: "JobRow") -> JobRecord:
        return JobRecord(
            job_id=job.job_id,
            status=JobStatus(job.status),
            stage=job.stage,
            progress_percent=job.progress_percent,
            result=job.result,
            locked_at=job.locked_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )

    def create_compression_job(self) -> JobRecord:
        now = time.time()
        with self.Session() as session:
            job = JobRow(
                job_id=uuid.uuid4().hex,
                status=JobStatus.WAITING.value,
                stage="WAITING",
                progress_percent=0.0,
                created_at=now,
                updated_at=now,
            )
            session.add(job)
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self.Session() as session:
            job = session.get(JobRow, job_id)
            if not job:
                return None
            return self._to_job_record(job)

    def _claim_where(self, *clauses) -> Optional[JobRecord]:
        now = time.time()
        with self.Session() as session:
            stmt = (
                select(JobRow)
                .where(JobRow.status == JobStatus.WAITING.value, *clauses)
                .order_by(JobRow.created_at.asc())
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            job = session.execute(stmt).scalar_one_or_none()
            if not job:
                return None
            job.status = JobStatus.RUNNING.value
            job.stage = "CLAIMED"
            job.locked_at = now
            job.updated_at = now
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def claim_job(self, job_id: str) -> Optional[JobRecord]:
        return self._claim_where(JobRow.job_id == job_id)

    def claim_next_waiting_job(self) -> Optional[JobRecord]:
        return self._claim_where()

    def update_job_progress(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        stage: Optional[str] = None,
        progress_percent: Optional[float] = None,
        result: Optional[dict] = None,
    ) -> None:
        with self.Session() as session:
            job = session.get(JobRow, job_id)
            if not job:
                return
            if status:
                job.status = status.value
            if stage:
                job.stage = stage
            if progress_percent is not None:
                job.progress_percent = progress_percent
            if result is not None:
                job.result = result
            job.updated_at = time.time()
            session.commit()

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        cutoff = time.time() - lock_timeout_seconds
        with self.Session() as session:
            updated = (
                session.query(JobRow)
                .filter(
                    JobRow.status == JobStatus.RUNNING.value,
                    JobRow.locked_at != None,
                    JobRow.locked_at < cutoff,
                )
                .update(
                    {
                        JobRow.status: JobStatus.WAITING.value,
                        JobRow.stage: "WAITING",
                        JobRow.progress_percent: 0.0,
                        JobRow.locked_at: None,
                        JobRow.updated_at: time.time(),
                    },
                    synchronize_session=False,
                )
            )
            session.commit()
            return updated or 0


Base = declarative_base()


class GalleryProjectRow(Base):
    __tablename__ = constants.GALLERY_PROJECTS_TABLE

    id = Column(String, primary_key=True)
    title = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    main_image_url = Column(String, nullable=False)
    aspect_ratio = Column(Float, nullable=True)
    display_order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class GalleryProjectImageRow(Base):
    __tablename__ = constants.GALLERY_PROJECT_IMAGES_TABLE

    id = Column(String, primary_key=True)
    project_id = Column(
        String,
        ForeignKey(f"{constants.GALLERY_PROJECTS_TABLE}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    image_url = Column(String, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)


class MusicArtworkRow(Base):
    __tablename__ = constants.MUSIC_ARTWORKS_TABLE

    id = Column(String, primary_key=True)
    youtube_url = Column(String, nullable=False)
    youtube_video_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=False)
    display_order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class WebsiteRow(Base):
    __tablename__ = constants.WEBSITES_TABLE

    id = Column(String, primary_key=True)
    url = Column(String, nullable=False)
    title = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    custom_thumbnail_url = Column(String, nullable=True)
    display_order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class GoalRow(Base):
    __tablename__ = constants.GOALS_TABLE

    id = Column(Integer, primary_key=True)
    checked = Column(Boolean, nullable=False, default=False)
    target_date = Column(String(10), nullable=True)


class NoteRow(Base):
    __tablename__ = constants.NOTES_TABLE

    id = Column(Integer, primary_key=True)
    content = Column(Text, nullable=False, default="")


class PageVisitRow(Base):
    __tablename__ = constants.PAGE_VISITS_TABLE

    id = Column(String, primary_key=True)
    page_path = Column(String, nullable=False, index=True)
    country = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class EmailClickRow(Base):
    __tablename__ = constants.EMAIL_CLICKS_TABLE

    id = Column(String, primary_key=True)
    email = Column(String, nullable=True)
    page_path = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class JobRow(Base):
    __tablename__ = constants.COMPRESSION_JOBS_TABLE

    job_id = Column(String, primary_key=True)
    status = Column(String, nullable=False, index=True)
    stage = Column(String, nullable=False, default="WAITING")
    progress_percent = Column(Float, nullable=False, default=0.0)
    result = Column(JSON, nullable=True)
    locked_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


TABLE_MODELS = {
    model.__tablename__: model
    for model in (
        GalleryProjectRow,
        GalleryProjectImageRow,
        MusicArtworkRow,
        WebsiteRow,
        GoalRow,
        NoteRow,
        PageVisitRow,
        EmailClickRow,
    )
}
