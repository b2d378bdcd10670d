import logging
import os

import click
from dotenv import load_dotenv
from flask import Flask, redirect, url_for, session

from extensions import db, login_manager, mail
from errors import register_error_handlers
from catalog.store import init_catalog
from accounts.models import User

# Blueprint Imports
from accounts.routes import accounts_bp
from employees.routes import employees_bp
from attendance.routes import attendance_bp
from payroll.routes import payroll_bp
from sales.routes import sales_bp
from catalog.products import products_bp
from catalog.stock import stock_bp
from invoices.routes import invoices_bp
from reports.routes import reports_bp


def _database_uri():
    uri = os.getenv("DB_URL") or "sqlite:///factory.db"
    if uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    return uri


def create_app(test_config=None):
    load_dotenv()

    app = Flask(__name__)

    # --- CONFIGURATION ---
    app.config["SQLALCHEMY_DATABASE_URI"] = _database_uri()
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret-change-me")
    app.config["DATA_DIR"] = os.getenv("DATA_DIR", os.path.join(app.root_path, "data"))
    app.config["FACTORY_NAME"] = os.getenv("FACTORY_NAME", "Ramlila Pedhewale")
    app.config["WKHTMLTOPDF_PATH"] = os.getenv("WKHTMLTOPDF_PATH")
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")

    # --- EMAIL CONFIGURATION (password reset) ---
    app.config["MAIL_SERVER"] = os.getenv("MAIL_SERVER", "localhost")
    app.config["MAIL_PORT"] = int(os.getenv("MAIL_PORT", 465))
    app.config["MAIL_USE_SSL"] = os.getenv("MAIL_USE_SSL", "True") == "True"
    app.config["MAIL_USE_TLS"] = os.getenv("MAIL_USE_TLS", "False") == "True"
    app.config["MAIL_USERNAME"] = os.getenv("MAIL_USERNAME")
    app.config["MAIL_PASSWORD"] = os.getenv("MAIL_PASS")
    app.config["MAIL_DEFAULT_SENDER"] = os.getenv("MAIL_DEFAULT_SENDER", os.getenv("MAIL_USERNAME"))

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize Extensions
    db.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)
    login_manager.login_view = "accounts.login"

    init_catalog(app)
    register_error_handlers(app)

    # --- REGISTER ALL BLUEPRINTS ---
    app.register_blueprint(accounts_bp)
    app.register_blueprint(employees_bp)
    app.register_blueprint(attendance_bp)
    app.register_blueprint(payroll_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(reports_bp)

    @app.template_filter("inr")
    def inr(value):
        return f"₹{(value or 0):,.2f}"

    @app.template_filter("ddmmyyyy")
    def ddmmyyyy(value):
        return value.strftime("%d-%m-%Y") if value else ""

    @app.context_processor
    def inject_factory():
        return {"factory_name": app.config["FACTORY_NAME"]}

    # ================= ROOT REDIRECTS =================

    @app.route("/")
    def index():
        if "user_id" in session:
            return redirect(url_for("accounts.dashboard"))
        return redirect(url_for("accounts.login"))

    @app.route("/login")
    def login_redirect():
        return redirect(url_for("accounts.login"))

    @app.route("/logout")
    def logout_redirect():
        return redirect(url_for("accounts.logout"))

    @app.cli.command("create-admin")
    @click.option("--name", prompt=True)
    @click.option("--email", prompt=True)
    @click.password_option()
    def create_admin(name, email, password):
        """Create the first administrator account."""
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            raise click.ClickException(f"{email} is already registered")
        user = User(name=name, email=email, role="admin")
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f"Admin {email} created.")

    with app.app_context():
        db.create_all()

    app.logger.info("Factory portal started (db=%s, data=%s)",
                    app.config["SQLALCHEMY_DATABASE_URI"].split("@")[-1], app.config["DATA_DIR"])
    return app


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


if __name__ == "__main__":
    # Ensure debug is off for production stability
    create_app().run(debug=False)
