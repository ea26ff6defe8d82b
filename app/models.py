from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String

from app.db import Base


class StoredBlob(Base):
    __tablename__ = "blobs"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(LargeBinary, nullable=False)
    content_type = Column(String(128), default="application/json", nullable=False)
    access = Column(String(16), default="public", nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
