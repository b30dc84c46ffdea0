from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from keyauth.database import Base, utcnow


class Application(Base):
    """Application model - a registered tenant that issues license keys."""

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    api_key = Column(String(255), unique=True, nullable=False, index=True)
    created_by = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Keys are removed by the ON DELETE CASCADE on keys.api
    keys = relationship("LicenseKey", back_populates="application", passive_deletes=True)
