from flask import Blueprint, request, make_response, current_app
from accounts.decorators import login_required
from errors import ApiError
from invoices.renderer import find_sale, render_invoice_pdf, invoice_filename, InvoiceRenderError

invoices_bp = Blueprint("invoices", __name__)


def _requested_sale_id(sale_id=None):
    if sale_id:
        return sale_id
    body = request.get_json(silent=True) if request.is_json else None
    return (
        (body or {}).get("saleId")
        or request.form.get("saleId")
        or request.args.get("saleId")
    )


@invoices_bp.route("/invoice/<sale_id>")
@invoices_bp.route("/getInvoice", methods=["GET", "POST"])
@login_required
def download_invoice(sale_id=None):
    sale_id = _requested_sale_id(sale_id)
    if not sale_id:
        raise ApiError("Sale ID is required", status_code=400)

    sale = find_sale(str(sale_id).strip())
    if sale is None:
        raise ApiError("Sale not found", status_code=404)

    try:
        pdf = render_invoice_pdf(sale)
    except InvoiceRenderError:
        current_app.logger.exception("Error generating PDF for sale %s", sale.id)
        raise ApiError("Failed to generate invoice", status_code=500)

    response = make_response(pdf)
    response.headers["Content-Type"] = "application/pdf"
    response.headers["Content-Disposition"] = f'attachment; filename="{invoice_filename(sale)}"'
    return response
