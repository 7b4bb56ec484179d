from sqlalchemy import Column, String, Text, DateTime

from dropbin.db.base import Base


class TextRecord(Base):
    __tablename__ = "texts"

    id = Column(String(16), primary_key=True)  # short id, unique among stored rows
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)  # created_at + TTL, never refreshed
    lock_password_hash = Column(String, nullable=True)  # NULL means unlocked

    @property
    def locked(self) -> bool:
        return self.lock_password_hash is not None
