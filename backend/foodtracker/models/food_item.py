from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from foodtracker.database import Base, BaseMixin


class FoodItem(BaseMixin, Base):
    __tablename__ = "food_items"

    recipient_id = Column(
        String,
        ForeignKey("recipients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name = Column(String, nullable=False)
    purchase_date = Column(DateTime(timezone=True), nullable=False)
    expiration_date = Column(DateTime(timezone=True), nullable=False, index=True)
    is_estimated = Column(Boolean, default=True, nullable=False)
    image_url = Column(String)

    recipient = relationship("Recipient", back_populates="food_items")
