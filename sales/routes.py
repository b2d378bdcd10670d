from flask import Blueprint, render_template, request, redirect, url_for, flash, session, current_app
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from accounts.decorators import login_required
from catalog.store import products_repo
from sales.models import Sale, SimpleSale, PAYMENT_METHODS, PAYMENT_STATUSES
from sales.aggregator import build_sale_totals, items_from_form, summarize_sales, to_number
from clock import ist_now
from datetime import datetime

sales_bp = Blueprint("sales", __name__, url_prefix="/sales")


def _sale_date(raw):
    if not raw:
        return ist_now()
    try:
        return datetime.strptime(raw, "%Y-%m-%d")
    except ValueError:
        raise ValueError("Invalid sale date. Please use YYYY-MM-DD.")


def _payment_method(raw):
    method = (raw or "cash").lower()
    if method not in PAYMENT_METHODS:
        raise ValueError(f"Unknown payment method '{raw}'.")
    return method


def _render_sale_form(error=None, form=None, status=200):
    return render_template(
        "sales/add_multiple.html",
        products=products_repo().all(),
        payment_methods=PAYMENT_METHODS,
        error=error,
        form=form or {},
        title="Add Sale",
    ), status


@sales_bp.route("/")
@login_required
def sales_list():
    simple = SimpleSale.query.order_by(SimpleSale.created_at.desc()).all()
    multi = Sale.query.order_by(Sale.created_at.desc()).all()
    summary = summarize_sales(simple, multi)
    return render_template("sales/list.html", title="Sales Management", **summary)


@sales_bp.route("/add")
@sales_bp.route("/add-multiple")
@login_required
def add_sale_form():
    return _render_sale_form()


@sales_bp.route("/add", methods=["POST"])
@login_required
def add_sale():
    if request.is_json:
        data = request.get_json(silent=True) or {}
        raw_items = data.get("products") or data.get("items")
    else:
        data = request.form
        raw_items = items_from_form(request.form)

    try:
        customer_name = (data.get("customerName") or "").strip()
        if not customer_name:
            raise ValueError("Customer name is required.")
        payment_status = data.get("paymentStatus") or "paid"
        if payment_status not in PAYMENT_STATUSES:
            raise ValueError(f"Unknown payment status '{payment_status}'.")

        # Product names are copied now so later catalog edits leave this sale untouched
        totals = build_sale_totals(
            raw_items,
            products_repo().names_by_id(),
            discount=data.get("discount"),
            tax=data.get("tax"),
        )
        sale = Sale(
            customer_name=customer_name,
            customer_phone=data.get("customerPhone") or None,
            customer_email=data.get("customerEmail") or None,
            customer_address=data.get("customerAddress") or None,
            items=totals["items"],
            subtotal=totals["subtotal"],
            discount=totals["discount"],
            tax=totals["tax"],
            total_amount=totals["total_amount"],
            payment_method=_payment_method(data.get("paymentMethod")),
            payment_status=payment_status,
            date=_sale_date(data.get("date")),
            notes=data.get("notes") or None,
        )
    except ValueError as e:
        return _render_sale_form(error=str(e), form=data, status=400)

    if not totals["items"]:
        current_app.logger.warning("Sale for %s saved without any valid item", customer_name)

    try:
        db.session.add(sale)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error creating sale")
        return _render_sale_form(error="Failed to save sale", form=data, status=500)

    flash(f"Sale #{sale.invoice_number} recorded: ₹{sale.total_amount:,.2f}", "success")
    return redirect(url_for("sales.sales_list"))


@sales_bp.route("/add-simple", methods=["GET", "POST"])
@login_required
def add_simple_sale():
    if request.method == "POST":
        form = request.form
        try:
            customer_name = (form.get("customerName") or "").strip()
            if not customer_name:
                raise ValueError("Customer name is required.")
            amount = to_number(form.get("amount"))
            if amount is None or amount < 0:
                raise ValueError("Amount must be a non-negative number.")
            sale = SimpleSale(
                user_id=session.get("user_id"),
                customer_name=customer_name,
                customer_phone=form.get("customerPhone") or None,
                amount=amount,
                payment_method=_payment_method(form.get("paymentMethod")),
                date=_sale_date(form.get("date")),
                notes=form.get("notes") or None,
            )
            db.session.add(sale)
            db.session.commit()
        except ValueError as e:
            return render_template("sales/add_simple.html", error=str(e), form=form,
                                   payment_methods=PAYMENT_METHODS, title="Quick Sale"), 400
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Error creating simple sale")
            return render_template("sales/add_simple.html", error="Failed to save sale", form=form,
                                   payment_methods=PAYMENT_METHODS, title="Quick Sale"), 500
        flash(f"Sale #{sale.invoice_number} recorded: ₹{sale.amount:,.2f}", "success")
        return redirect(url_for("sales.sales_list"))
    return render_template("sales/add_simple.html", form={}, payment_methods=PAYMENT_METHODS, title="Quick Sale")
