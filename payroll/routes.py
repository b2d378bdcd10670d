import csv
import io
from flask import Blueprint, render_template, request, redirect, url_for, flash, make_response, current_app, abort
from extensions import db
from accounts.decorators import login_required, role_required
from employees.models import Employee
from payroll.models import Salary, Advance
from payroll.engine import run_payroll, mark_paid, validate_period, SalaryStateError
from clock import ist_today
from datetime import datetime

payroll_bp = Blueprint("payroll", __name__, url_prefix="/employees/salary")


def _selected_period(source):
    """Month and year from a form or query string, current month when absent.

    Raises ValueError when either value is present but not a valid period.
    """
    today = ist_today()
    raw_month = (source.get("month") or "").strip()
    raw_year = (source.get("year") or "").strip()
    try:
        month = int(raw_month) if raw_month else today.month
        year = int(raw_year) if raw_year else today.year
    except ValueError:
        raise ValueError(f"Invalid payroll period '{raw_month}/{raw_year}'.")
    validate_period(month, year)
    return month, year


def _render_salary_list(month, year, error=None, status=200):
    salaries = (
        Salary.query.filter_by(month=month, year=year)
        .join(Employee)
        .order_by(Employee.name)
        .all()
    )
    total_salary = sum(s.net_salary for s in salaries)
    average_salary = round(total_salary / len(salaries)) if salaries else 0
    return render_template(
        "payroll/salary_list.html",
        salaries=salaries,
        current_month=month,
        current_year=year,
        total_salary=total_salary,
        average_salary=average_salary,
        error=error,
        title="Salary Management",
    ), status


@payroll_bp.route("/")
@login_required
def salary_list():
    try:
        month, year = _selected_period(request.args)
    except ValueError as e:
        today = ist_today()
        return _render_salary_list(today.month, today.year, error=str(e), status=400)
    return _render_salary_list(month, year)


@payroll_bp.route("/calculate", methods=["POST"])
@login_required
@role_required("admin")
def calculate_salaries():
    try:
        month, year = _selected_period(request.form)
    except ValueError as e:
        today = ist_today()
        return _render_salary_list(today.month, today.year, error=str(e), status=400)

    result = run_payroll(month, year)
    flash(result.summary(), "success" if result.ok else "warning")
    for employee, reason in result.failed:
        flash(f"{employee.name}: {reason}", "danger")
    return redirect(url_for("payroll.salary_list", month=month, year=year))


@payroll_bp.route("/<int:employee_id>")
@login_required
def salary_details(employee_id):
    employee = db.get_or_404(Employee, employee_id, description="Employee not found")
    salaries = (
        Salary.query.filter_by(employee_id=employee_id)
        .order_by(Salary.year.desc(), Salary.month.desc())
        .all()
    )
    advances = Advance.query.filter_by(employee_id=employee_id).order_by(Advance.created_at.desc()).all()

    return render_template(
        "payroll/salary_details.html",
        employee=employee,
        salaries=salaries,
        advances=advances,
        total_salary_paid=sum(s.net_salary for s in salaries if s.status == "paid"),
        total_advances=sum(a.amount for a in advances),
        pending_advances=sum(a.amount for a in advances if not a.is_deducted),
        today=ist_today(),
        title=f"Salary Details - {employee.name}",
    )


@payroll_bp.route("/pay/<int:salary_id>", methods=["POST"])
@login_required
@role_required("admin")
def pay_salary(salary_id):
    salary = db.get_or_404(Salary, salary_id, description="Salary record not found")
    try:
        mark_paid(salary)
        flash(f"Salary for {salary.employee.name} ({salary.period_label}) marked as paid.", "success")
    except SalaryStateError as e:
        flash(str(e), "warning")
    return redirect(request.referrer or url_for("payroll.salary_list", month=salary.month, year=salary.year))


@payroll_bp.route("/<int:employee_id>/advances/add", methods=["POST"])
@login_required
@role_required("admin")
def add_advance(employee_id):
    employee = db.get_or_404(Employee, employee_id, description="Employee not found")
    try:
        amount = float(request.form.get("amount"))
        if amount <= 0:
            raise ValueError("Advance amount must be positive.")
        raw_date = request.form.get("date")
        day = datetime.strptime(raw_date, "%Y-%m-%d").date() if raw_date else ist_today()
    except (TypeError, ValueError) as e:
        flash(f"Error: {e}", "danger")
        return redirect(url_for("payroll.salary_details", employee_id=employee_id))

    advance = Advance(employee_id=employee.id, amount=amount, date=day, reason=request.form.get("reason"))
    db.session.add(advance)
    db.session.commit()
    current_app.logger.info("Advance of %.2f recorded for employee %s", amount, employee.id)
    flash(f"Advance of ₹{amount:,.2f} recorded for {employee.name}.", "success")
    return redirect(url_for("payroll.salary_details", employee_id=employee_id))


@payroll_bp.route("/export")
@login_required
def export_salary_csv():
    try:
        month, year = _selected_period(request.args)
    except ValueError as e:
        abort(400, description=str(e))
    records = Salary.query.filter_by(month=month, year=year).all()
    si = io.StringIO()
    cw = csv.writer(si)
    cw.writerow(["Employee", "Month", "Year", "Basic", "Present", "Half Days", "Absent",
                 "Working Days", "Calculated", "Advances", "Net", "Status"])
    for r in records:
        cw.writerow([r.employee.name, r.month, r.year, r.basic_salary, r.present_days, r.half_days,
                     r.absent_days, r.total_working_days, f"{r.calculated_salary:.2f}",
                     f"{r.advance_deductions:.2f}", f"{r.net_salary:.2f}", r.status])
    output = make_response(si.getvalue())
    output.headers["Content-Disposition"] = f"attachment; filename=Salaries_{year}_{month:02d}.csv"
    output.headers["Content-type"] = "text/csv"
    return output
