from foodtracker.models.recipient import Recipient
from foodtracker.models.food_item import FoodItem
from foodtracker.models.notification_log import NotificationLogEntry

__all__ = ["Recipient", "FoodItem", "NotificationLogEntry"]
