from flask import Blueprint, render_template, request, redirect, url_for, flash, abort
from accounts.decorators import login_required
from catalog.store import products_repo

products_bp = Blueprint("products", __name__, url_prefix="/products")


def _product_fields(form):
    name = (form.get("name") or "").strip()
    if not name:
        raise ValueError("Product name is required.")
    try:
        price = float(form.get("price"))
    except (TypeError, ValueError):
        raise ValueError("Price must be a number.")
    if price < 0:
        raise ValueError("Price cannot be negative.")
    return {
        "name": name,
        "price": price,
        "unit": form.get("unit") or "kg",
        "description": form.get("description") or "",
    }


@products_bp.route("/")
@login_required
def product_list():
    repo = products_repo()
    return render_template(
        "catalog/products.html",
        products=repo.all(),
        stats=repo.price_stats(),
        title="Product Management",
    )


@products_bp.route("/add", methods=["GET", "POST"])
@login_required
def add_product():
    if request.method == "POST":
        try:
            fields = _product_fields(request.form)
        except ValueError as e:
            return render_template("catalog/product_form.html", product=request.form, error=str(e), title="Add Product"), 400
        products_repo().add(fields)
        flash(f"Product {fields['name']} added.", "success")
        return redirect(url_for("products.product_list"))
    return render_template("catalog/product_form.html", product=None, title="Add Product")


@products_bp.route("/edit/<product_id>", methods=["GET", "POST"])
@login_required
def edit_product(product_id):
    repo = products_repo()
    product = repo.get(product_id)
    if not product:
        abort(404, description="Product not found")

    if request.method == "POST":
        try:
            fields = _product_fields(request.form)
        except ValueError as e:
            return render_template("catalog/product_form.html", product=product, error=str(e), title="Edit Product"), 400
        if repo.update(product_id, fields) is None:
            abort(404, description="Product not found")
        flash("Product updated.", "success")
        return redirect(url_for("products.product_list"))
    return render_template("catalog/product_form.html", product=product, title="Edit Product")


@products_bp.route("/delete/<product_id>", methods=["POST"])
@login_required
def delete_product(product_id):
    products_repo().delete(product_id)
    flash("Product deleted.", "success")
    return redirect(url_for("products.product_list"))
