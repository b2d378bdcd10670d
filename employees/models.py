from extensions import db
from clock import ist_now, ist_today


class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(60), nullable=False)
    joining_date = db.Column(db.Date, nullable=False, default=ist_today)
    basic_salary = db.Column(db.Float, nullable=False, default=0.0)  # monthly
    phone = db.Column(db.String(20))
    address = db.Column(db.Text)

    # "Deleting" an employee only clears this flag
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=ist_now)
    updated_at = db.Column(db.DateTime, default=ist_now, onupdate=ist_now)

    __table_args__ = (
        db.CheckConstraint("basic_salary >= 0", name="ck_employee_basic_salary"),
    )

    def __repr__(self):
        return f"<Employee {self.name} ({self.role})>"
