"""Chat persistence used by the chat endpoint."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from naikkelas.storage.models import Base, utcnow


class Chat(Base):
    __tablename__ = "chats"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(64), primary_key=True)
    chat_id = Column(String(64), ForeignKey("chats.id"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    role = Column(String(10), nullable=False)  # user | ai
    content = Column(Text, nullable=False)
    tokens_used = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
