from extensions import db
from clock import ist_now, ist_today


class Advance(db.Model):
    __tablename__ = "advances"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.Date, nullable=False, default=ist_today)
    reason = db.Column(db.String(255))

    # Set by the payroll run that nets this advance out
    is_deducted = db.Column(db.Boolean, default=False, nullable=False)
    deducted_date = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=ist_now, nullable=False)

    employee = db.relationship("Employee", backref=db.backref("advances", lazy=True))

    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_advance_amount"),
    )

    def __repr__(self):
        return f"<Advance {self.employee_id} {self.amount} deducted={self.is_deducted}>"


class Salary(db.Model):
    __tablename__ = "salaries"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)

    basic_salary = db.Column(db.Float, nullable=False)  # snapshot at computation time
    present_days = db.Column(db.Integer, default=0)
    absent_days = db.Column(db.Integer, default=0)
    half_days = db.Column(db.Integer, default=0)
    total_working_days = db.Column(db.Integer, default=30)
    calculated_salary = db.Column(db.Float, nullable=False)
    advance_deductions = db.Column(db.Float, default=0.0)
    net_salary = db.Column(db.Float, nullable=False)

    status = db.Column(db.String(10), default="pending", nullable=False)  # pending, paid
    paid_date = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=ist_now)

    employee = db.relationship("Employee", backref=db.backref("salaries", lazy=True))

    # One salary record per employee per month
    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", "year", name="_employee_month_year_uc"),
        db.CheckConstraint("month BETWEEN 1 AND 12", name="ck_salary_month"),
        db.CheckConstraint("status IN ('pending', 'paid')", name="ck_salary_status"),
    )

    @property
    def period_label(self):
        return f"{self.month:02d}/{self.year}"

    def __repr__(self):
        return f"<Salary {self.employee_id} - {self.month}/{self.year} {self.status}>"
