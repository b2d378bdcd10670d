from flask import Blueprint, render_template, Response
import csv
import io
from accounts.decorators import login_required
from catalog.store import products_repo, stock_repo
from sales.models import Sale, SimpleSale
from sales.aggregator import summarize_sales

reports_bp = Blueprint("reports", __name__, url_prefix="/reports")

RECENT_SALES = 10


@reports_bp.route("/")
@login_required
def index():
    """Sales and stock overview across both kinds of sale."""
    summary = summarize_sales(
        SimpleSale.query.order_by(SimpleSale.created_at.desc()).all(),
        Sale.query.order_by(Sale.created_at.desc()).all(),
    )
    sales = summary["sales"]
    count = len(sales)
    average_order = round(summary["total_sales"] / count) if count else None

    return render_template(
        "reports/dashboard.html",
        recent_sales=sales[:RECENT_SALES],
        total_sales=summary["total_sales"],
        total_quantity=summary["total_quantity"],
        total_sales_count=count,
        average_order=average_order,
        products=products_repo().all(),
        stock=stock_repo().all(),
        low_stock_items=stock_repo().low_stock(),
        title="Reports & Analytics",
    )


@reports_bp.route("/sales.csv")
@login_required
def export_sales_csv():
    summary = summarize_sales(SimpleSale.query.all(), Sale.query.all())

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Invoice", "Type", "Date", "Customer", "Products", "Quantity", "Payment", "Total"])
    for s in summary["sales"]:
        writer.writerow([
            s["id"][:8],
            s["type"],
            s["date"].strftime("%d-%m-%Y") if s["date"] else "N/A",
            s["customer_name"],
            s["product_name"],
            "" if s["quantity"] is None else f"{s['quantity']:g}",
            s["payment_method"],
            f"{s['total_amount']:.2f}",
        ])
    output.seek(0)

    return Response(
        output.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment;filename=sales_report.csv"}
    )
