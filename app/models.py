"""
SQLAlchemy models backing the key-value store.
All database models inherit from Base (declarative base).
"""
from sqlalchemy import Column, Integer, String, LargeBinary
from app.database import Base


class BucketEntry(Base):
    """
    A single key/value pair inside a named bucket.
    Keys are compared bytewise by SQLite, so big-endian encoded
    integers iterate in numeric order.
    """
    __tablename__ = "kv_entries"

    bucket = Column(String(64), primary_key=True)
    key = Column(LargeBinary, primary_key=True)
    value = Column(LargeBinary, nullable=False)


class BucketSequence(Base):
    """
    Monotonic sequence counter of a bucket.
    Never decremented, so ids handed out from it are never reused.
    """
    __tablename__ = "kv_sequences"

    bucket = Column(String(64), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
