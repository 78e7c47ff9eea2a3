"""
Customer Model - One row per purchasing customer
"""
from models.database import db
from datetime import datetime
from constants import CUSTOMERS_TABLE, table_name


class Customer(db.Model):
    __tablename__ = table_name(CUSTOMERS_TABLE)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, index=True)
    email = db.Column(db.String(100), unique=True, index=True)
    name = db.Column(db.String(255))
    purchase_value = db.Column(db.Numeric(18, 9), default=0)
    purchase_count = db.Column(db.Integer, default=0)
    date_created = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'email': self.email,
            'name': self.name,
            'date_created': self.date_created.isoformat() if self.date_created else None,
        }
