"""
Models package - SQLAlchemy models
"""
from models.database import db
from models.order import Order, OrderItem, OrderAdjustment, OrderAddress
from models.customer import Customer
from models.download import Download

__all__ = [
    'db',
    'Order',
    'OrderItem',
    'OrderAdjustment',
    'OrderAddress',
    'Customer',
    'Download',
]
