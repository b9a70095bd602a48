from __future__ import annotations

from ..extensions import db
from polimarket.time_utils import to_utc_z


class HREmployee(db.Model):
    """HR staff member allowed to approve or revoke sellers."""
    __tablename__ = "hr_employees"

    id = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    position = db.Column(db.String(128), nullable=True)
    department = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "department": self.department,
            "email": self.email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Seller(db.Model):
    """
    Seller authorization record.

    A seller may only appear on a new sale while is_active AND is_authorized.
    Sellers are never deleted; revocation flips is_authorized, retirement
    flips is_active. authorized_by_hr_id/authorized_at always describe the
    last HR decision, whichever way it went.
    """
    __tablename__ = "sellers"
    __table_args__ = (
        db.Index("ix_sellers_active_authorized", "is_active", "is_authorized"),
    )

    code = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    territory = db.Column(db.String(128), nullable=True)

    # Commission in basis points (550 = 5.50%)
    commission_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    is_authorized = db.Column(db.Boolean, nullable=False, default=False)
    authorized_at = db.Column(db.DateTime(timezone=True), nullable=True)
    authorized_by_hr_id = db.Column(db.String(20), db.ForeignKey("hr_employees.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    authorized_by = db.relationship("HREmployee")

    def __repr__(self) -> str:
        return f"<Seller code={self.code!r} authorized={self.is_authorized} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "territory": self.territory,
            "commission_rate_bps": self.commission_rate_bps,
            "is_authorized": self.is_authorized,
            "authorized_at": to_utc_z(self.authorized_at),
            "authorized_by_hr_id": self.authorized_by_hr_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
