from __future__ import annotations

from ..extensions import db
from ..records import ProductRecord
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product owned by one organization.

    Ids are generated by the POS client, so the key is (organization_id, id).
    Price is USD; currency_prices holds optional per-currency overrides.
    inventory maps a size label (or "default") to a count >= 0.
    """
    __tablename__ = "products"

    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), primary_key=True)
    id = db.Column(db.String(64), primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    category = db.Column(db.String(128), nullable=False, default="Other")
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.Text, nullable=True)
    sizes = db.Column(db.JSON, nullable=True)
    inventory = db.Column(db.JSON, nullable=True)
    currency_prices = db.Column(db.JSON, nullable=True)
    show_text_on_button = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            id=self.id,
            name=self.name,
            price=float(self.price or 0),
            category=self.category,
            description=self.description,
            image_url=self.image_url,
            sizes=list(self.sizes or []),
            inventory=dict(self.inventory) if self.inventory is not None else None,
            currency_prices=dict(self.currency_prices) if self.currency_prices is not None else None,
            show_text_on_button=self.show_text_on_button,
        )

    def to_dict(self) -> dict:
        data = self.to_record().to_payload()
        data["updatedAt"] = to_utc_z(self.updated_at)
        return data
