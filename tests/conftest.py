import pytest

from app import create_app
from extensions import db
from accounts.models import User
from employees.models import Employee

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "DATA_DIR": str(tmp_path / "data"),
        "SECRET_KEY": "test-secret",
        "MAIL_SUPPRESS_SEND": True,
        "LOG_LEVEL": "WARNING",
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(app):
    with app.app_context():
        user = User(name="Admin", email=ADMIN_EMAIL, role="admin")
        user.set_password(ADMIN_PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture
def auth_client(client, admin):
    resp = client.post("/accounts/login", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 302
    return client


@pytest.fixture
def make_employee(app):
    def _make(name="Ramesh", basic_salary=3000.0, is_active=True):
        with app.app_context():
            emp = Employee(name=name, role="Halwai", basic_salary=basic_salary, is_active=is_active)
            db.session.add(emp)
            db.session.commit()
            return emp.id
    return _make
