"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import BigInteger, Column, Integer, String, Text

from livefeed.storage import Base


class Message(Base):
    """
    SQLAlchemy model for the append-only message log.

    Table: chat_messages
    Primary Key: id (assigned by the database, strictly increasing, never reused)
    """
    __tablename__ = "chat_messages"
    # AUTOINCREMENT keeps SQLite from handing out a rowid twice
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    author = Column(String(150), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(String, nullable=False, index=True)  # Server time ISO-8601
