"""Models package - exports all SQLAlchemy models."""
# Accounts
from omahub.models.app_user import AppUser
from omahub.models.profile import Profile

# Catalogue
from omahub.models.brand import Brand
from omahub.models.product import Product

# Basket & Orders
from omahub.models.basket import Basket, BasketStatus
from omahub.models.basket_item import BasketItem
from omahub.models.order import Order, OrderStatus
from omahub.models.order_item import OrderItem
from omahub.models.notification import Notification

# Maintenance
from omahub.models.image_repair_log import ImageRepairLog

__all__ = [
    'AppUser', 'Profile',
    'Brand', 'Product',
    'Basket', 'BasketStatus', 'BasketItem',
    'Order', 'OrderStatus', 'OrderItem', 'Notification',
    'ImageRepairLog',
]
