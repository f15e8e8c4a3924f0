from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Business(db.Model):
    """
    A trading location inside a tenant.

    MULTI-TENANT: every product, movement, sale, refund and shift row copies
    both business_id and tenant_id so reporting queries can filter on either
    without a join.
    """
    __tablename__ = "businesses"
    __table_args__ = (
        db.Index("ix_businesses_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    location = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Business id={self.id} name={self.name!r} tenant_id={self.tenant_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "location": self.location,
            "created_at": to_utc_z(self.created_at),
        }
