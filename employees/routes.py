from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from accounts.decorators import login_required
from employees.models import Employee
from datetime import datetime

employees_bp = Blueprint("employees", __name__, url_prefix="/employees")


def _employee_fields(form):
    name = (form.get("name") or "").strip()
    role = (form.get("role") or "").strip()
    if not name or not role:
        raise ValueError("Name and role are required.")
    try:
        basic = float(form.get("basicSalary") or form.get("basic_salary"))
    except (TypeError, ValueError):
        raise ValueError("Basic salary must be a number.")
    if basic < 0:
        raise ValueError("Basic salary cannot be negative.")
    raw_date = form.get("joiningDate") or form.get("joining_date")
    try:
        joining = datetime.strptime(raw_date, "%Y-%m-%d").date() if raw_date else None
    except ValueError:
        raise ValueError("Invalid joining date. Please use YYYY-MM-DD.")
    fields = {
        "name": name,
        "role": role,
        "basic_salary": basic,
        "phone": form.get("phone") or None,
        "address": form.get("address") or None,
    }
    if joining:
        fields["joining_date"] = joining
    return fields


@employees_bp.route("/")
@login_required
def employee_list():
    employees = Employee.query.filter_by(is_active=True).order_by(Employee.created_at.desc()).all()
    total_payroll = sum(e.basic_salary for e in employees)
    average_salary = round(total_payroll / len(employees)) if employees else 0
    return render_template(
        "employees/list.html",
        employees=employees,
        active_count=len(employees),
        average_salary=average_salary,
        total_payroll=total_payroll,
        title="Employee Management",
    )


@employees_bp.route("/add", methods=["GET", "POST"])
@login_required
def add_employee():
    if request.method == "POST":
        try:
            fields = _employee_fields(request.form)
            employee = Employee(**fields)
            db.session.add(employee)
            db.session.commit()
        except ValueError as e:
            return render_template("employees/form.html", employee=None, form=request.form, error=str(e), title="Add Employee"), 400
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Error creating employee")
            return render_template("employees/form.html", employee=None, form=request.form,
                                   error="Error creating employee", title="Add Employee"), 500
        flash(f"Employee {employee.name} added.", "success")
        return redirect(url_for("employees.employee_list"))
    return render_template("employees/form.html", employee=None, form={}, title="Add Employee")


@employees_bp.route("/edit/<int:employee_id>", methods=["GET", "POST"])
@login_required
def edit_employee(employee_id):
    employee = db.get_or_404(Employee, employee_id, description="Employee not found")

    if request.method == "POST":
        try:
            for key, value in _employee_fields(request.form).items():
                setattr(employee, key, value)
            db.session.commit()
        except ValueError as e:
            return render_template("employees/form.html", employee=employee, form=request.form, error=str(e), title="Edit Employee"), 400
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Error updating employee %s", employee_id)
            return render_template("employees/form.html", employee=employee, form=request.form,
                                   error="Error updating employee", title="Edit Employee"), 500
        flash("Employee updated.", "success")
        return redirect(url_for("employees.employee_list"))
    return render_template("employees/form.html", employee=employee, form={}, title="Edit Employee")


@employees_bp.route("/delete/<int:employee_id>", methods=["POST"])
@login_required
def delete_employee(employee_id):
    employee = db.get_or_404(Employee, employee_id, description="Employee not found")
    employee.is_active = False
    db.session.commit()
    flash(f"{employee.name} has been deactivated.", "success")
    return redirect(url_for("employees.employee_list"))
