from __future__ import annotations

from ..extensions import db
from ..records import EmailSignupRecord, LineItem, SaleRecord
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed checkout (append-only).

    WHY append-only: sales are the money ledger. Once stored a row is never
    rewritten; the only mutation allowed is flipping `synced`.
    Line items are a JSON snapshot (product name and price at sale time).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_org_timestamp", "organization_id", "timestamp"),
    )

    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), primary_key=True)
    id = db.Column(db.String(64), primary_key=True)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)
    items = db.Column(db.JSON, nullable=False)
    total = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    actual_amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    discount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    tip_amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    payment_method = db.Column(db.String(64), nullable=False)
    is_hookup = db.Column(db.Boolean, nullable=False, default=False)
    synced = db.Column(db.Boolean, nullable=False, default=False)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_record(self) -> SaleRecord:
        return SaleRecord(
            id=self.id,
            timestamp=self.timestamp,
            items=[LineItem.from_payload(item) for item in (self.items or [])],
            total=float(self.total),
            actual_amount=float(self.actual_amount),
            discount=float(self.discount or 0),
            payment_method=self.payment_method,
            tip_amount=float(self.tip_amount or 0),
            synced=self.synced,
        )

    def to_dict(self) -> dict:
        return self.to_record().to_payload()


class EmailSignup(db.Model):
    __tablename__ = "email_signups"

    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), primary_key=True)
    id = db.Column(db.String(64), primary_key=True)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    source = db.Column(db.String(32), nullable=False)
    sale_id = db.Column(db.String(64), nullable=True)
    synced = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_record(self) -> EmailSignupRecord:
        return EmailSignupRecord(
            id=self.id,
            timestamp=self.timestamp,
            email=self.email,
            source=self.source,
            name=self.name,
            phone=self.phone,
            sale_id=self.sale_id,
            synced=self.synced,
        )

    def to_dict(self) -> dict:
        return self.to_record().to_payload()


class CloseOut(db.Model):
    """
    Snapshot aggregation over a selling session's sales.

    Totals and breakdowns are frozen at creation. Only the descriptive
    fields (session_name, location, event_date, notes) may be edited later.
    """
    __tablename__ = "close_outs"
    __table_args__ = (
        db.Index("ix_close_outs_org_timestamp", "organization_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    session_name = db.Column(db.String(255), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    event_date = db.Column(db.String(10), nullable=True)  # YYYY-MM-DD
    notes = db.Column(db.Text, nullable=True)

    sales_count = db.Column(db.Integer, nullable=False, default=0)
    total_revenue = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    actual_revenue = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    discounts_given = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    tips_received = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    payment_breakdown = db.Column(db.JSON, nullable=False)
    products_sold = db.Column(db.JSON, nullable=False)

    expected_cash = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    actual_cash = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    cash_difference = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)

    sale_ids = db.Column(db.JSON, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "createdBy": self.created_by,
            "timestamp": to_utc_z(self.timestamp),
            "sessionName": self.session_name,
            "location": self.location,
            "eventDate": self.event_date,
            "notes": self.notes,
            "salesCount": self.sales_count,
            "totalRevenue": float(self.total_revenue or 0),
            "actualRevenue": float(self.actual_revenue or 0),
            "discountsGiven": float(self.discounts_given or 0),
            "tipsReceived": float(self.tips_received or 0),
            "paymentBreakdown": self.payment_breakdown,
            "productsSold": self.products_sold,
            "expectedCash": None if self.expected_cash is None else float(self.expected_cash),
            "actualCash": None if self.actual_cash is None else float(self.actual_cash),
            "cashDifference": None if self.cash_difference is None else float(self.cash_difference),
            "saleIds": self.sale_ids,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
