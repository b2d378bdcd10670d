from extensions import db
from clock import ist_now

ATTENDANCE_STATUSES = ("present", "absent", "half-day")


class Attendance(db.Model):
    __tablename__ = "attendance"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(10), nullable=False)  # present, absent, half-day
    check_in = db.Column(db.String(5), default="09:00")
    check_out = db.Column(db.String(5), default="18:00")
    remarks = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=ist_now)

    employee = db.relationship("Employee", backref=db.backref("attendance_logs", lazy=True))

    # One attendance record per employee per day
    __table_args__ = (
        db.UniqueConstraint("employee_id", "date", name="_employee_date_uc"),
        db.CheckConstraint("status IN ('present', 'absent', 'half-day')", name="ck_attendance_status"),
    )

    def __repr__(self):
        return f"<Attendance {self.employee_id} {self.date} {self.status}>"
