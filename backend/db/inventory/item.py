from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    category = Column(String, nullable=True, index=True)
    specifications = Column(Text, nullable=True)

    # Mutated only through the ledger (services.ledger.adjust_quantity)
    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String, nullable=True)

    location_id = Column(Integer, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True)
    min_quantity = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    image_path = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    location = relationship("Location", back_populates="items")

    # Item ids are never reused so history rows can't be attributed to a newer item
    __table_args__ = ({"sqlite_autoincrement": True},)

    @property
    def is_low_stock(self) -> bool:
        return self.min_quantity is not None and self.quantity <= self.min_quantity

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "specifications": self.specifications,
            "quantity": self.quantity,
            "unit": self.unit,
            "location_id": self.location_id,
            "min_quantity": self.min_quantity,
            "notes": self.notes,
            "image_path": self.image_path,
            "is_low_stock": self.is_low_stock,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
