import uuid
from extensions import db
from clock import ist_now

PAYMENT_METHODS = ("cash", "card", "upi", "cheque")
PAYMENT_STATUSES = ("pending", "paid", "partial")


def new_sale_id():
    return uuid.uuid4().hex


class Sale(db.Model):
    """Itemized sale. Line items are copied from the catalog at sale time."""
    __tablename__ = "sales"

    id = db.Column(db.String(32), primary_key=True, default=new_sale_id)
    customer_name = db.Column(db.String(120), nullable=False)
    customer_phone = db.Column(db.String(20))
    customer_email = db.Column(db.String(120))
    customer_address = db.Column(db.Text)

    # [{productId, productName, quantity, price, totalAmount}, ...]
    items = db.Column(db.JSON, nullable=False, default=list)

    subtotal = db.Column(db.Float, nullable=False, default=0.0)
    discount = db.Column(db.Float, default=0.0)
    tax = db.Column(db.Float, default=0.0)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    payment_method = db.Column(db.String(10), default="cash")
    payment_status = db.Column(db.String(10), default="paid")
    date = db.Column(db.DateTime, nullable=False, default=ist_now)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=ist_now)
    updated_at = db.Column(db.DateTime, default=ist_now, onupdate=ist_now)

    @property
    def invoice_number(self):
        return self.id[:8]

    def __repr__(self):
        return f"<Sale {self.invoice_number} {self.customer_name} {self.total_amount}>"


class SimpleSale(db.Model):
    """A sale recorded as one customer and one amount."""
    __tablename__ = "simple_sales"

    id = db.Column(db.String(32), primary_key=True, default=new_sale_id)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True)
    customer_name = db.Column(db.String(120), nullable=False)
    customer_phone = db.Column(db.String(20))
    amount = db.Column(db.Float, nullable=False)
    payment_method = db.Column(db.String(10), default="cash")
    date = db.Column(db.DateTime, nullable=False, default=ist_now)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=ist_now)
    updated_at = db.Column(db.DateTime, default=ist_now, onupdate=ist_now)

    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_simple_sale_amount"),
    )

    @property
    def invoice_number(self):
        return self.id[:8]

    def __repr__(self):
        return f"<SimpleSale {self.invoice_number} {self.customer_name} {self.amount}>"
