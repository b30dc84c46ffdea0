from typing import List
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from keyauth.database import Base, utcnow


class LicenseKey(Base):
    """License key model - a time-limited key bound to at most ``device_limit`` devices."""

    __tablename__ = "keys"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(255), unique=True, nullable=False, index=True)
    api = Column(
        String(255),
        ForeignKey("applications.api_key", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    prefix = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    banned = Column(Boolean, default=False, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    device_limit = Column(Integer, default=1, nullable=False)
    # Number of rows in key_hwids; the guard column for the conditional bind update
    hwid_count = Column(Integer, default=0, nullable=False)
    system_info = Column(Text, nullable=True)
    first_used = Column(DateTime, nullable=True)

    # Relationships
    application = relationship("Application", back_populates="keys")
    bindings = relationship(
        "KeyHwid",
        back_populates="license_key",
        order_by="KeyHwid.id",
        lazy="selectin",
        passive_deletes=True,
    )

    @property
    def hwid(self) -> List[str]:
        """Bound hardware ids in binding order."""
        return [binding.hwid for binding in self.bindings]


class KeyHwid(Base):
    """KeyHwid model - one device bound to a license key."""

    __tablename__ = "key_hwids"
    __table_args__ = (
        UniqueConstraint("key_id", "hwid", name="uq_key_hwids_key_hwid"),
    )

    id = Column(Integer, primary_key=True, index=True)
    key_id = Column(Integer, ForeignKey("keys.id", ondelete="CASCADE"), nullable=False, index=True)
    hwid = Column(String(255), nullable=False)
    bound_at = Column(DateTime, default=utcnow, nullable=False)

    license_key = relationship("LicenseKey", back_populates="bindings")
