"""Monthly payroll computation.

For a payroll period (month, year) every active employee gets at most one
Salary row. Pay is pro-rated on the calendar day count of the month:

    calculated = (present + 0.5 * half_days) * basic / days_in_month
    net        = max(0, calculated - undeducted advances of the month)

A Salary row, once written, is never recomputed. Advances are flagged as
deducted in the same transaction that writes the Salary row, so they are
never marked without a persisted salary to show for it.
"""
import calendar
import enum
import logging
from datetime import date, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from attendance.models import Attendance
from employees.models import Employee
from payroll.models import Advance, Salary
from clock import ist_now

logger = logging.getLogger(__name__)

HALF_DAY_WEIGHT = 0.5


class SalaryState(enum.Enum):
    NOT_COMPUTED = "not_computed"
    PENDING = "pending"
    PAID = "paid"


class SalaryStateError(Exception):
    pass


class PayrollRunResult:
    """Outcome of one batch run over all active employees."""

    def __init__(self, month, year):
        self.month = month
        self.year = year
        self.created = []
        self.skipped = []
        self.failed = []

    @property
    def ok(self):
        return not self.failed

    def summary(self):
        return (f"Processed: {len(self.created)} | Skipped: {len(self.skipped)} | "
                f"Failed: {len(self.failed)} for {self.month:02d}/{self.year}")


def validate_period(month, year):
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month!r}")
    if not isinstance(year, int) or year < 1:
        raise ValueError(f"invalid year {year!r}")


def days_in_month(year, month):
    return calendar.monthrange(year, month)[1]


def month_window(year, month):
    """First and last calendar day of the month, both inclusive."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def salary_state(employee_id, month, year):
    salary = Salary.query.filter_by(employee_id=employee_id, month=month, year=year).first()
    if salary is None:
        return SalaryState.NOT_COMPUTED
    return SalaryState(salary.status)


def count_attendance(employee_id, start, end):
    rows = (
        db.session.query(Attendance.status, func.count(Attendance.id))
        .filter(
            Attendance.employee_id == employee_id,
            Attendance.date >= start,
            Attendance.date <= end,
        )
        .group_by(Attendance.status)
        .all()
    )
    counts = dict(rows)
    return {
        "present": counts.get("present", 0),
        "absent": counts.get("absent", 0),
        "half": counts.get("half-day", 0),
    }


def prorated_salary(basic_salary, present_days, half_days, total_days):
    # No rounding here; the float result is stored as is
    return (present_days + half_days * HALF_DAY_WEIGHT) * (basic_salary / total_days)


def net_pay(calculated_salary, advance_deductions):
    return max(0, calculated_salary - advance_deductions)


def undeducted_advances(employee_id, start, end):
    """Advances not yet netted out whose creation time falls inside the month."""
    window_start = datetime.combine(start, datetime.min.time())
    window_end = datetime.combine(end + timedelta(days=1), datetime.min.time())
    return (
        Advance.query.filter(
            Advance.employee_id == employee_id,
            Advance.is_deducted.is_(False),
            Advance.created_at >= window_start,
            Advance.created_at < window_end,
        )
        .order_by(Advance.created_at)
        .all()
    )


def compute_employee_salary(employee, month, year):
    """Compute and persist the salary of one employee for one period.

    Returns the new Salary, or None when the period was already computed.
    Database errors propagate after the session is rolled back.
    """
    validate_period(month, year)
    if salary_state(employee.id, month, year) is not SalaryState.NOT_COMPUTED:
        return None

    total_days = days_in_month(year, month)
    start, end = month_window(year, month)
    counts = count_attendance(employee.id, start, end)
    calculated = prorated_salary(employee.basic_salary, counts["present"], counts["half"], total_days)

    advances = undeducted_advances(employee.id, start, end)
    deductions = sum(a.amount for a in advances)

    salary = Salary(
        employee_id=employee.id,
        month=month,
        year=year,
        basic_salary=employee.basic_salary,
        present_days=counts["present"],
        absent_days=counts["absent"],
        half_days=counts["half"],
        total_working_days=total_days,
        calculated_salary=calculated,
        advance_deductions=deductions,
        net_salary=net_pay(calculated, deductions),
        status=SalaryState.PENDING.value,
    )
    try:
        db.session.add(salary)
        # Unique (employee, month, year) is checked here, before any advance is touched
        db.session.flush()
        stamp = ist_now()
        for advance in advances:
            advance.is_deducted = True
            advance.deducted_date = stamp
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Salary computed for employee %s (%02d/%d): net %.2f, %d advance(s) deducted",
                employee.id, month, year, salary.net_salary, len(advances))
    return salary


def run_payroll(month, year):
    """Compute salaries for every active employee for the given period.

    Running it again for the same period only picks up employees that
    have no salary yet. A database failure for one employee is rolled back
    and reported in the result; the remaining employees are still processed.
    """
    validate_period(month, year)
    result = PayrollRunResult(month, year)
    employees = Employee.query.filter_by(is_active=True).order_by(Employee.id).all()

    for employee in employees:
        try:
            salary = compute_employee_salary(employee, month, year)
        except IntegrityError:
            logger.warning("Salary for employee %s (%02d/%d) was written by a concurrent run",
                           employee.id, month, year)
            result.failed.append((employee, "already computed by a concurrent run"))
            continue
        except SQLAlchemyError as e:
            logger.exception("Payroll failed for employee %s (%02d/%d)", employee.id, month, year)
            result.failed.append((employee, str(e)))
            continue

        if salary is None:
            result.skipped.append(employee)
        else:
            result.created.append(salary)

    logger.info("Payroll run %s", result.summary())
    return result


def mark_paid(salary):
    """Move a pending salary to paid. Paid is terminal."""
    if salary.status == SalaryState.PAID.value:
        raise SalaryStateError(f"salary {salary.id} is already paid")
    salary.status = SalaryState.PAID.value
    salary.paid_date = ist_now()
    db.session.commit()
    return salary
