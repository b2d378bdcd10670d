from flask import Blueprint, render_template, request, redirect, url_for, flash, abort
from accounts.decorators import login_required
from catalog.store import stock_repo

stock_bp = Blueprint("stock", __name__, url_prefix="/stock")


def _stock_fields(form):
    name = (form.get("name") or "").strip()
    if not name:
        raise ValueError("Item name is required.")
    try:
        quantity = float(form.get("quantity"))
    except (TypeError, ValueError):
        raise ValueError("Quantity must be a number.")
    return {"name": name, "quantity": quantity, "unit": form.get("unit") or "kg"}


@stock_bp.route("/")
@login_required
def stock_list():
    repo = stock_repo()
    levels = repo.level_counts()
    return render_template(
        "catalog/stock.html",
        stock=repo.all(),
        low_count=levels["low"],
        medium_count=levels["medium"],
        good_count=levels["good"],
        title="Stock Management",
    )


@stock_bp.route("/add", methods=["GET", "POST"])
@login_required
def add_stock():
    if request.method == "POST":
        try:
            fields = _stock_fields(request.form)
        except ValueError as e:
            return render_template("catalog/stock_form.html", item=request.form, error=str(e), title="Add Stock"), 400
        stock_repo().add(fields)
        flash(f"{fields['name']} added to stock.", "success")
        return redirect(url_for("stock.stock_list"))
    return render_template("catalog/stock_form.html", item=None, title="Add Stock")


@stock_bp.route("/edit/<item_id>", methods=["GET", "POST"])
@login_required
def edit_stock(item_id):
    repo = stock_repo()
    item = repo.get(item_id)
    if not item:
        abort(404, description="Stock item not found")

    if request.method == "POST":
        try:
            fields = _stock_fields(request.form)
        except ValueError as e:
            return render_template("catalog/stock_form.html", item=item, error=str(e), title="Edit Stock"), 400
        if repo.update(item_id, fields) is None:
            abort(404, description="Stock item not found")
        flash("Stock updated.", "success")
        return redirect(url_for("stock.stock_list"))
    return render_template("catalog/stock_form.html", item=item, title="Edit Stock")


@stock_bp.route("/delete/<item_id>", methods=["POST"])
@login_required
def delete_stock(item_id):
    stock_repo().delete(item_id)
    flash("Stock item removed.", "success")
    return redirect(url_for("stock.stock_list"))
