"""User domain model — maps to the 'users' table."""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="user")  # admin, approver, uploader, user
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    tracts = relationship(
        "Tract",
        back_populates="author",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    # Download history survives the user (downloads.user_id is SET NULL).
    downloads = relationship("Download", back_populates="user", passive_deletes=True)

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
