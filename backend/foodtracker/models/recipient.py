from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from foodtracker.database import Base, TimestampMixin


class Recipient(TimestampMixin, Base):
    __tablename__ = "recipients"

    id = Column(String, primary_key=True)
    push_token = Column(String, nullable=True)

    # No delete cascade: items must be removed before their recipient.
    food_items = relationship("FoodItem", back_populates="recipient")
