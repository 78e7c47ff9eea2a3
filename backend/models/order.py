"""
Order Models - Orders and the rows that hang off an order

Tables read by the stats engine:
  orders              one row per purchase (total, tax, discount, gateway, status)
  order_items         one row per purchased download (product_id, total)
  order_adjustments   discounts/fees applied to an order (type, description, amount)
  order_addresses     billing address per order (country, region)

Money columns are stored as decimals in the store currency.
"""
from models.database import db
from datetime import datetime
from constants import (
    ORDERS_TABLE,
    ORDER_ITEMS_TABLE,
    ORDER_ADJUSTMENTS_TABLE,
    ORDER_ADDRESSES_TABLE,
    ORDER_STATUS_COMPLETE,
    table_name,
)


class Order(db.Model):
    __tablename__ = table_name(ORDERS_TABLE)

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, index=True)
    user_id = db.Column(db.Integer, index=True)
    email = db.Column(db.String(100), index=True)
    status = db.Column(db.String(20), default=ORDER_STATUS_COMPLETE, index=True)
    gateway = db.Column(db.String(100), index=True)
    subtotal = db.Column(db.Numeric(18, 9), default=0)
    discount = db.Column(db.Numeric(18, 9), default=0)
    tax = db.Column(db.Numeric(18, 9), default=0)
    total = db.Column(db.Numeric(18, 9), default=0)
    date_created = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    date_refundable = db.Column(db.DateTime)

    def __repr__(self):
        return f"<Order {self.id} {self.status} {self.total}>"


class OrderItem(db.Model):
    __tablename__ = table_name(ORDER_ITEMS_TABLE)

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, index=True, nullable=False)
    product_id = db.Column(db.Integer, index=True, nullable=False)
    product_name = db.Column(db.String(255))
    quantity = db.Column(db.Integer, default=1)
    amount = db.Column(db.Numeric(18, 9), default=0)
    tax = db.Column(db.Numeric(18, 9), default=0)
    total = db.Column(db.Numeric(18, 9), default=0)
    date_created = db.Column(db.DateTime, default=datetime.utcnow, index=True)


class OrderAdjustment(db.Model):
    __tablename__ = table_name(ORDER_ADJUSTMENTS_TABLE)

    id = db.Column(db.Integer, primary_key=True)
    object_id = db.Column(db.Integer, index=True)  # order id
    type = db.Column(db.String(20), index=True)  # 'discount', 'fee'
    description = db.Column(db.String(100))  # discount code for discounts
    amount = db.Column(db.Numeric(18, 9), default=0)
    date_created = db.Column(db.DateTime, default=datetime.utcnow, index=True)


class OrderAddress(db.Model):
    __tablename__ = table_name(ORDER_ADDRESSES_TABLE)

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, index=True, nullable=False)
    name = db.Column(db.String(200))
    address = db.Column(db.String(200))
    city = db.Column(db.String(100))
    region = db.Column(db.String(50), index=True)  # state/province code
    postal_code = db.Column(db.String(32))
    country = db.Column(db.String(2), index=True)  # ISO 3166-1 alpha-2
    date_created = db.Column(db.DateTime, default=datetime.utcnow)
