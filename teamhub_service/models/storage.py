from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, UniqueConstraint

from ..database import Base


class StoredObject(Base):
    __tablename__ = "stored_objects"

    id = Column(Integer, primary_key=True, index=True)
    bucket = Column(String(64), nullable=False)
    path = Column(String(512), nullable=False)
    content_type = Column(String(128), nullable=False, default="application/octet-stream")
    data = Column(LargeBinary, nullable=False)

    updated_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (UniqueConstraint("bucket", "path", name="uq_stored_object_path"),)
