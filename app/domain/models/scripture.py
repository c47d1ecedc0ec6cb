"""Scripture references attached to tracts at upload time."""

from sqlalchemy import Column, Integer, String, DateTime

from app.infrastructure.database import Base, utcnow


class ScriptureReference(Base):
    __tablename__ = "scripture_references"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book = Column(String(50), nullable=False)
    chapter = Column(Integer, nullable=False)
    verse_start = Column(Integer, nullable=True)
    verse_end = Column(Integer, nullable=True)
    version = Column(String(20), nullable=False, default="NIV")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<ScriptureReference {self.book} {self.chapter}>"
