from flask import Blueprint, render_template, redirect, url_for, flash, request, current_app, abort
import pandas as pd
from extensions import db
from attendance.models import Attendance, ATTENDANCE_STATUSES
from employees.models import Employee
from accounts.decorators import login_required
from payroll.engine import month_window, validate_period
from clock import ist_today
from datetime import datetime

attendance_bp = Blueprint("attendance", __name__, url_prefix="/attendance")


def parse_status(raw):
    """Accepts 'Present', 'half day', 'HALF-DAY' and friends."""
    value = str(raw or "").strip().lower().replace("_", "-").replace(" ", "-")
    if value == "halfday":
        value = "half-day"
    if value not in ATTENDANCE_STATUSES:
        raise ValueError(f"Unknown attendance status '{raw}'")
    return value


def record_attendance(employee_id, day, status, remarks=None, check_in=None, check_out=None):
    """Create or overwrite the single attendance row for (employee, day).

    Returns True when a new row was added. The caller commits.
    """
    record = Attendance.query.filter_by(employee_id=employee_id, date=day).first()
    created = record is None
    if created:
        record = Attendance(employee_id=employee_id, date=day)
        db.session.add(record)
    record.status = status
    if remarks is not None:
        record.remarks = remarks
    if check_in:
        record.check_in = check_in
    if check_out:
        record.check_out = check_out
    return created


@attendance_bp.route("/")
@login_required
def attendance_list():
    today = ist_today()
    try:
        month = int(request.args.get("month") or today.month)
        year = int(request.args.get("year") or today.year)
        validate_period(month, year)
    except ValueError as e:
        abort(400, description=f"Invalid attendance period: {e}")

    start, end = month_window(year, month)
    logs = (
        Attendance.query.filter(Attendance.date >= start, Attendance.date <= end)
        .order_by(Attendance.date.desc())
        .all()
    )
    employees = Employee.query.filter_by(is_active=True).order_by(Employee.name).all()
    return render_template(
        "attendance/list.html",
        logs=logs,
        employees=employees,
        month=month,
        year=year,
        statuses=ATTENDANCE_STATUSES,
        today=today,
        title="Attendance",
    )


@attendance_bp.route("/mark", methods=["POST"])
@login_required
def mark_attendance():
    employee = db.get_or_404(Employee, request.form.get("employee_id", type=int), description="Employee not found")
    try:
        raw_date = request.form.get("date")
        day = datetime.strptime(raw_date, "%Y-%m-%d").date() if raw_date else ist_today()
        status = parse_status(request.form.get("status"))
    except ValueError as e:
        flash(f"Error: {e}", "danger")
        return redirect(url_for("attendance.attendance_list"))

    created = record_attendance(
        employee.id,
        day,
        status,
        remarks=request.form.get("remarks"),
        check_in=request.form.get("check_in"),
        check_out=request.form.get("check_out"),
    )
    db.session.commit()
    verb = "marked" if created else "updated"
    flash(f"Attendance {verb} for {employee.name} on {day.strftime('%d-%m-%Y')}.", "success")
    return redirect(url_for("attendance.attendance_list", month=day.month, year=day.year))


@attendance_bp.route("/import", methods=["POST"])
@login_required
def import_attendance():
    file = request.files.get("file")
    if not file or file.filename == "":
        flash("Please select a valid Excel or CSV file", "danger")
        return redirect(url_for("attendance.attendance_list"))

    try:
        if file.filename.endswith(".xlsx") or file.filename.endswith(".xls"):
            df = pd.read_excel(file)
        else:
            df = pd.read_csv(file)
    except Exception as e:
        current_app.logger.error("Attendance import could not read %s: %s", file.filename, e)
        flash(f"Import Error: {e}", "danger")
        return redirect(url_for("attendance.attendance_list"))

    df.columns = [str(c).lower().strip() for c in df.columns]
    active_ids = {e.id for e in Employee.query.filter_by(is_active=True).all()}

    added, updated, skipped = 0, 0, []
    for line_no, row in enumerate(df.to_dict("records"), start=2):
        try:
            employee_id = int(row.get("employee_id"))
            if employee_id not in active_ids:
                raise ValueError(f"no active employee {employee_id}")
            if pd.isna(row.get("date")):
                raise ValueError("missing date")
            day = pd.to_datetime(row.get("date")).date()
            status = parse_status(row.get("status"))
        except (TypeError, ValueError) as e:
            skipped.append(f"row {line_no}: {e}")
            continue
        remarks = row.get("remarks")
        if record_attendance(employee_id, day, status, remarks=remarks if isinstance(remarks, str) else None):
            added += 1
        else:
            updated += 1
        db.session.flush()

    db.session.commit()
    current_app.logger.info("Attendance import: %d added, %d updated, %d skipped", added, updated, len(skipped))
    flash(f"Imported: {added} added | {updated} updated | {len(skipped)} skipped", "success")
    for problem in skipped[:10]:
        flash(problem, "warning")
    return redirect(url_for("attendance.attendance_list"))
