"""
Relational photo table (Postgres in production) and its photo backend.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, String, Text, create_engine, delete, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from roopsnap.backends import PHOTO_REQUIRED, complete_records, photo_record

Base = declarative_base()


class PhotoRow(Base):
    __tablename__ = "photos"

    id = Column(String, primary_key=True)
    url = Column(Text, nullable=False)
    category = Column(String, nullable=False, default="Portrait")
    created_at = Column(String, nullable=False, index=True)


class SqlPhotoBackend:
    """
    SQLAlchemy-backed photo table. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    name = "table"

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlPhotoBackend")
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

    def _to_record(self, row: PhotoRow) -> dict:
        return photo_record(
            row.id,
            {"url": row.url, "category": row.category, "created_at": row.created_at},
        )

    def list_photos(self) -> list[dict]:
        with self.Session() as session:
            stmt = select(PhotoRow).order_by(PhotoRow.created_at.desc())
            records = [self._to_record(row) for row in session.execute(stmt).scalars()]
        return complete_records("photos", records, PHOTO_REQUIRED)

    def insert_photo(self, fields: dict) -> dict:
        record = photo_record(uuid.uuid4().hex, fields)
        with self.Session() as session:
            row = PhotoRow(
                id=record["id"],
                url=record["url"],
                category=record["category"],
                created_at=record["created_at"],
            )
            session.add(row)
            session.commit()
            return self._to_record(row)

    def delete_photo(self, record_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(PhotoRow).where(PhotoRow.id == str(record_id)))
            session.commit()
            return bool(result.rowcount)
