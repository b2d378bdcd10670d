from datetime import datetime

import pytest

from extensions import db
from invoices import renderer
from invoices.renderer import build_invoice, money
from sales.models import Sale, SimpleSale

SALE_ID = "a1b2c3d4e5f60718293a4b5c6d7e8f90"


def _itemized(**overrides):
    fields = dict(
        id=SALE_ID,
        customer_name="Asha",
        customer_phone="98200 00000",
        items=[
            {"productId": "pedha-1", "productName": "Kesar Pedha", "quantity": 2, "price": 200, "totalAmount": 400},
            {"productId": "pedha-2", "productName": "Chocolate Pedha", "quantity": 1, "price": 250, "totalAmount": 250},
        ],
        subtotal=650,
        discount=50,
        tax=10,
        total_amount=610,
        date=datetime(2025, 3, 7, 11, 30),
    )
    fields.update(overrides)
    return Sale(**fields)


@pytest.fixture
def fake_pdf(monkeypatch):
    calls = []

    def from_string(html, output, configuration=None, options=None):
        calls.append(html)
        return b"%PDF-1.4 fake"

    monkeypatch.setattr(renderer.pdfkit, "from_string", from_string)
    monkeypatch.setattr(renderer, "_pdfkit_configuration", lambda: None)
    return calls


def test_money_format():
    assert money(610) == "₹610.00"
    assert money("12.5") == "₹12.50"
    assert money(None) == "₹0.00"


def test_itemized_invoice_layout():
    invoice = build_invoice(_itemized())
    assert invoice["kind"] == "itemized"
    assert invoice["number"] == "a1b2c3d4"
    assert invoice["date"] == "07-03-2025"
    assert invoice["customer"] == [("Customer", "Asha"), ("Phone", "98200 00000")]
    assert invoice["lines"][0] == {"product_name": "Kesar Pedha", "quantity": "2", "price": "₹200.00", "total": "₹400.00"}
    assert invoice["summary"] == [("Subtotal", "₹650.00"), ("Discount", "-₹50.00"), ("Tax", "₹10.00")]
    assert invoice["total"] == "₹610.00"


def test_zero_discount_and_tax_are_hidden():
    invoice = build_invoice(_itemized(discount=0, tax=0, total_amount=650, customer_phone=None,
                                      customer_address="Station Road, Pune"))
    assert invoice["summary"] == [("Subtotal", "₹650.00")]
    assert invoice["customer"] == [("Customer", "Asha"), ("Address", "Station Road, Pune")]


def test_non_finite_line_total_is_recomputed():
    items = [
        {"productName": "Kesar Pedha", "quantity": 1.5, "price": 200, "totalAmount": None},
        {"productName": "Plain Pedha", "quantity": 2, "price": 180, "totalAmount": "NaN"},
    ]
    invoice = build_invoice(_itemized(items=items))
    assert [line["total"] for line in invoice["lines"]] == ["₹300.00", "₹360.00"]


def test_simple_invoice_layout():
    sale = SimpleSale(id="ffeeddcc00112233", customer_name="Ravi", amount=1250, date=datetime(2025, 1, 2))
    invoice = build_invoice(sale)
    assert invoice["kind"] == "simple"
    assert invoice["number"] == "ffeeddcc"
    assert invoice["lines"] == [{"description": "Sale", "amount": "₹1250.00"}]
    assert invoice["total"] == "₹1250.00"
    assert invoice["customer"] == [("Customer", "Ravi")]


def test_invoice_requires_sale_id(auth_client):
    resp = auth_client.post("/getInvoice", json={})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["message"] == "Sale ID is required"


def test_unknown_sale_is_404(auth_client):
    resp = auth_client.get("/getInvoice?saleId=deadbeef")
    assert resp.status_code == 404
    assert resp.get_json()["error"]["message"] == "Sale not found"


@pytest.mark.parametrize("how", ["path", "query", "form", "json"])
def test_invoice_download(app, auth_client, fake_pdf, how):
    with app.app_context():
        db.session.add(_itemized())
        db.session.commit()

    if how == "path":
        resp = auth_client.get(f"/invoice/{SALE_ID}")
    elif how == "query":
        resp = auth_client.get(f"/getInvoice?saleId={SALE_ID}")
    elif how == "form":
        resp = auth_client.post("/getInvoice", data={"saleId": SALE_ID})
    else:
        resp = auth_client.post("/getInvoice", json={"saleId": SALE_ID})

    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.headers["Content-Disposition"] == 'attachment; filename="invoice-a1b2c3d4.pdf"'
    assert resp.data.startswith(b"%PDF")
    html = fake_pdf[0]
    assert "Invoice #a1b2c3d4" in html
    assert "₹610.00" in html
    assert "Kesar Pedha" in html


def test_simple_sale_is_found_first(app, auth_client, fake_pdf):
    with app.app_context():
        db.session.add(SimpleSale(id=SALE_ID, customer_name="Ravi", amount=99, date=datetime(2025, 1, 2)))
        db.session.commit()
    resp = auth_client.get(f"/invoice/{SALE_ID}")
    assert resp.status_code == 200
    assert "Description" in fake_pdf[0]
    assert "₹99.00" in fake_pdf[0]


def test_pdf_failure_is_500(app, auth_client, monkeypatch):
    def broken(*args, **kwargs):
        raise OSError("wkhtmltopdf exited with code 1")

    monkeypatch.setattr(renderer.pdfkit, "from_string", broken)
    monkeypatch.setattr(renderer, "_pdfkit_configuration", lambda: None)
    with app.app_context():
        db.session.add(_itemized())
        db.session.commit()

    resp = auth_client.get(f"/invoice/{SALE_ID}")
    assert resp.status_code == 500
    assert resp.get_json()["error"]["message"] == "Failed to generate invoice"
