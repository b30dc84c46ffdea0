from sqlalchemy import Column, Integer, String, DateTime
from keyauth.database import Base, utcnow


class Support(Base):
    """Support model - delegated administrators with access to every application."""

    __tablename__ = "supports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), unique=True, nullable=False, index=True)
    added_by = Column(String(255), nullable=False)
    added_at = Column(DateTime, default=utcnow, nullable=False)
