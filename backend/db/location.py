import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .database import Base, utcnow


class LocationType(str, enum.Enum):
    SHELF = "shelf"
    BOX = "box"
    COMPARTMENT = "compartment"


class Location(Base):
    """A storage unit in the shelf -> box -> compartment hierarchy."""
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=True, index=True)
    location_type = Column(
        Enum(LocationType, name="location_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    description = Column(Text, nullable=True)
    # Assigned lazily by the QR identity service, never changed afterwards
    qr_code_id = Column(String(64), nullable=True, unique=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship("Item", back_populates="location", passive_deletes=True)

    __table_args__ = ({"sqlite_autoincrement": True},)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "location_type": LocationType(self.location_type).value,
            "description": self.description,
            "qr_code_id": self.qr_code_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
