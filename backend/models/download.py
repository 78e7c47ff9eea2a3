"""
Download Model - A sellable product
"""
from models.database import db
from datetime import datetime
from constants import DOWNLOADS_TABLE, table_name


class Download(db.Model):
    __tablename__ = table_name(DOWNLOADS_TABLE)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(18, 9), default=0)
    status = db.Column(db.String(20), default='publish')
    date_created = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': float(self.price) if self.price is not None else None,
            'status': self.status,
        }
