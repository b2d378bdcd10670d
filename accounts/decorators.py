from functools import wraps
from flask import redirect, url_for, flash, session
from flask_login import current_user, logout_user

def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated or "user_id" not in session:
            flash("Please login first", "warning")
            return redirect(url_for("accounts.login"))
        if not current_user.is_active:
            logout_user()
            session.clear()
            flash("This account has been deactivated.", "danger")
            return redirect(url_for("accounts.login"))
        return f(*args, **kwargs)
    return wrapper

def role_required(*roles):
    """Allow the view only for users whose role is one of ``roles``."""
    def wrapper(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return redirect(url_for("accounts.login"))

            if current_user.role not in roles:
                flash("Access denied", "danger")
                return redirect(url_for("accounts.dashboard"))

            return f(*args, **kwargs)
        return decorated_function
    return wrapper
