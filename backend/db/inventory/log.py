import enum

from sqlalchemy import Column, DateTime, Enum, Integer, Text

from ..database import Base, utcnow


class OperationType(str, enum.Enum):
    ADD = "add"
    REMOVE = "remove"
    ADJUST = "adjust"


class InventoryLog(Base):
    """Append-only record of one quantity change. Rows are never updated or deleted."""
    __tablename__ = "inventory_log"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # No FK: the trail outlives the item it describes
    item_id = Column(Integer, nullable=False, index=True)

    quantity_change = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    operation_type = Column(
        Enum(OperationType, name="operation_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    source = Column(Text, nullable=False, default="manual")
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = ({"sqlite_autoincrement": True},)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "item_id": self.item_id,
            "quantity_change": self.quantity_change,
            "quantity_after": self.quantity_after,
            "operation_type": OperationType(self.operation_type).value,
            "source": self.source,
            "notes": self.notes,
            "created_at": self.created_at,
        }
