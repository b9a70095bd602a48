from __future__ import annotations

from ..extensions import db
from polimarket.time_utils import to_utc_z


class Customer(db.Model):
    """Customer master data. Registered through customer_service, read by the sales core."""
    __tablename__ = "customers"

    id = db.Column(db.String(50), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    customer_type = db.Column(db.String(32), nullable=False, default="REGULAR")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "customer_type": self.customer_type,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
