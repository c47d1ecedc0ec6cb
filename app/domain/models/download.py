"""Download ledger — one immutable row per served download."""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base, utcnow


class Download(Base):
    __tablename__ = "downloads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tract_id = Column(Integer, ForeignKey("tracts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    ip_address = Column(String(45), nullable=False)
    user_agent = Column(Text, nullable=True)
    downloaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    tract = relationship("Tract", back_populates="downloads")
    user = relationship("User", back_populates="downloads")

    def __repr__(self):
        return f"<Download tract={self.tract_id} user={self.user_id}>"
