"""Invoice layout for both kinds of sale.

``build_invoice`` turns a stored sale into the numbers and labels printed
on the invoice; ``render_invoice_pdf`` feeds them through the Jinja
template and wkhtmltopdf.
"""
import logging
import os
import platform

import pdfkit
from flask import current_app, render_template

from extensions import db
from sales.aggregator import to_number
from sales.models import Sale, SimpleSale

logger = logging.getLogger(__name__)

CURRENCY = "₹"
PDF_OPTIONS = {
    "page-size": "A4",
    "encoding": "UTF-8",
    "print-media-type": None,
    "no-outline": None,
    "quiet": "",
}


class InvoiceRenderError(Exception):
    pass


def money(value):
    return f"{CURRENCY}{(to_number(value) or 0):.2f}"


def find_sale(sale_id):
    """Simple sales are looked up first, then itemized sales."""
    sale = db.session.get(SimpleSale, sale_id) if sale_id else None
    if sale is None and sale_id:
        sale = db.session.get(Sale, sale_id)
    return sale


def _line(item):
    quantity = to_number(item.get("quantity")) or 0
    price = to_number(item.get("price")) or 0
    total = to_number(item.get("totalAmount"))
    if total is None:
        total = quantity * price
    return {
        "product_name": item.get("productName") or "Product",
        "quantity": f"{quantity:g}",
        "price": money(price),
        "total": money(total),
    }


def build_invoice(sale):
    """Everything the invoice template prints, already formatted."""
    customer = [("Customer", sale.customer_name)]
    if sale.customer_phone:
        customer.append(("Phone", sale.customer_phone))

    if isinstance(sale, SimpleSale):
        return {
            "kind": "simple",
            "number": sale.invoice_number,
            "date": sale.date.strftime("%d-%m-%Y"),
            "customer": customer,
            "lines": [{"description": "Sale", "amount": money(sale.amount)}],
            "summary": [],
            "total": money(sale.amount),
        }

    if sale.customer_email:
        customer.append(("Email", sale.customer_email))
    if sale.customer_address:
        customer.append(("Address", sale.customer_address))

    summary = [("Subtotal", money(sale.subtotal))]
    if (to_number(sale.discount) or 0) > 0:
        summary.append(("Discount", "-" + money(sale.discount)))
    if (to_number(sale.tax) or 0) > 0:
        summary.append(("Tax", money(sale.tax)))

    return {
        "kind": "itemized",
        "number": sale.invoice_number,
        "date": sale.date.strftime("%d-%m-%Y"),
        "customer": customer,
        "lines": [_line(item) for item in (sale.items or [])],
        "summary": summary,
        "total": money(sale.total_amount),
    }


def _pdfkit_configuration():
    path = current_app.config.get("WKHTMLTOPDF_PATH")
    if not path:
        if platform.system() == "Windows":
            path = r"C:\Program Files\wkhtmltopdf\bin\wkhtmltopdf.exe"
        else:
            path = "/usr/bin/wkhtmltopdf"
            if not os.path.exists(path):
                path = "/usr/local/bin/wkhtmltopdf"
    return pdfkit.configuration(wkhtmltopdf=path)


def render_invoice_html(invoice):
    return render_template(
        "invoices/invoice.html",
        invoice=invoice,
        factory_name=current_app.config["FACTORY_NAME"],
    )


def render_invoice_pdf(sale):
    invoice = build_invoice(sale)
    html = render_invoice_html(invoice)
    try:
        return pdfkit.from_string(html, False, configuration=_pdfkit_configuration(), options=PDF_OPTIONS)
    except OSError as e:
        logger.error("PDF generation failed for invoice %s: %s", invoice["number"], e)
        raise InvoiceRenderError(str(e)) from e


def invoice_filename(sale):
    return f"invoice-{sale.invoice_number}.pdf"
