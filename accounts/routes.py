from flask import Blueprint, render_template, request, redirect, url_for, flash, session, current_app
from flask_login import login_user, logout_user
from flask_mail import Message
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from sqlalchemy import func
from extensions import db, mail
from accounts.models import User
from accounts.decorators import login_required, role_required
from employees.models import Employee
from payroll.models import Salary
from sales.models import Sale, SimpleSale
from catalog.store import stock_repo
from clock import ist_now, ist_today
from datetime import datetime, time

accounts_bp = Blueprint("accounts", __name__, url_prefix="/accounts")

RESET_SALT = "password-reset-salt"
RESET_MAX_AGE = 1800


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"])


@accounts_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        password = request.form.get("password") or ""
        user = User.query.filter_by(email=email).first()

        if user and user.check_password(password):
            if not user.is_active:
                flash("This account has been deactivated.", "danger")
                return render_template("accounts/login.html", email=email), 403

            login_user(user)
            session["user_id"] = user.id
            session["name"] = user.name
            session["email"] = user.email
            session["role"] = user.role

            user.last_login = ist_now()
            db.session.commit()
            current_app.logger.info("User %s logged in", user.email)
            flash(f"Welcome back, {user.name}!", "success")
            return redirect(url_for("accounts.dashboard"))

        flash("Invalid email or password. Please try again.", "danger")
        return render_template("accounts/login.html", email=email), 401
    return render_template("accounts/login.html")


@accounts_bp.route("/logout")
def logout():
    logout_user()
    session.clear()
    return redirect(url_for("accounts.login"))


@accounts_bp.route("/register", methods=["GET", "POST"])
@login_required
@role_required("admin")
def register():
    if request.method == "POST":
        name = (request.form.get("name") or "").strip()
        email = (request.form.get("email") or "").strip().lower()
        password = request.form.get("password") or ""
        role = request.form.get("role") or "staff"

        error = None
        if not name or not email or not password:
            error = "Name, email and password are required."
        elif role not in ("admin", "staff"):
            error = "Unknown role."
        elif User.query.filter_by(email=email).first():
            error = "Email already registered."
        if error:
            return render_template("accounts/register.html", error=error, form=request.form), 400

        user = User(name=name, email=email, role=role)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        flash(f"User {email} created.", "success")
        return redirect(url_for("accounts.dashboard"))
    return render_template("accounts/register.html", form={})


@accounts_bp.route("/dashboard")
@login_required
def dashboard():
    today = ist_today()
    day_start = datetime.combine(today, time.min)
    day_end = datetime.combine(today, time.max)

    multi_today = db.session.query(func.coalesce(func.sum(Sale.total_amount), 0)).filter(
        Sale.date.between(day_start, day_end)
    ).scalar()
    simple_today = db.session.query(func.coalesce(func.sum(SimpleSale.amount), 0)).filter(
        SimpleSale.date.between(day_start, day_end)
    ).scalar()

    return render_template(
        "accounts/dashboard.html",
        factory_name=current_app.config["FACTORY_NAME"],
        active_employees=Employee.query.filter_by(is_active=True).count(),
        pending_salaries=Salary.query.filter_by(status="pending").count(),
        sales_today=float(multi_today or 0) + float(simple_today or 0),
        low_stock_count=len(stock_repo().low_stock()),
    )


# ================= PASSWORD RECOVERY =================

@accounts_bp.route("/forgot-password", methods=["GET", "POST"])
def forgot_password():
    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        user = User.query.filter_by(email=email).first()
        if user:
            token = _serializer().dumps(email, salt=RESET_SALT)
            link = url_for("accounts.reset_password", token=token, _external=True)
            msg = Message("Password Reset Request", recipients=[email])
            msg.body = f"To reset your password, visit: {link}"
            try:
                mail.send(msg)
            except Exception as e:
                current_app.logger.error("SMTP error while sending reset mail: %s", e)
                flash("Error sending email. Check server configuration.", "danger")
                return redirect(url_for("accounts.login"))
        # Same answer whether or not the address exists
        flash("If that email exists in our system, a reset link has been sent.", "info")
        return redirect(url_for("accounts.login"))
    return render_template("accounts/forgot_password.html")


@accounts_bp.route("/reset-password/<token>", methods=["GET", "POST"])
def reset_password(token):
    try:
        email = _serializer().loads(token, salt=RESET_SALT, max_age=RESET_MAX_AGE)
    except (SignatureExpired, BadSignature):
        flash("The reset link is invalid or has expired!", "danger")
        return redirect(url_for("accounts.forgot_password"))

    if request.method == "POST":
        password = request.form.get("password") or ""
        if len(password) < 6:
            return render_template("accounts/reset_password.html", token=token,
                                   error="Password must be at least 6 characters."), 400
        user = User.query.filter_by(email=email).first_or_404()
        user.set_password(password)
        db.session.commit()
        flash("Password updated successfully.", "success")
        return redirect(url_for("accounts.login"))
    return render_template("accounts/reset_password.html", token=token)
