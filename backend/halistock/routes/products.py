# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/halistock/routes/products.py
"""
Product catalog routes.

Prices are integer cents. Stock is changed through POST /<id>/stock only
(or implicitly by sales); rentals never touch it.
"""
from flask import Blueprint, current_app, request

from ..services import products_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)
from . import SERVICE_ERRORS, error_response

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _parse_bool(value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes")


@products_bp.get("")
def list_products():
    """
    List products.

    Query params:
    - category: exact category
    - q: search over name, brand and barcode
    - rentable: true/false
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return products_service.list_products(
        category=request.args.get("category"),
        search=request.args.get("q"),
        rentable=_parse_bool(request.args.get("rentable")),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except SERVICE_ERRORS as e:
        return error_response(e)


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)  # Handles price validation including max check
        created = products_service.create_product(patch=patch)
    except SERVICE_ERRORS as e:
        return error_response(e)

    current_app.logger.info("Product %s created", created.id)
    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id, patch=patch)
    except SERVICE_ERRORS as e:
        return error_response(e)

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Delete a product nobody references; 409 once it has sales or rentals."""
    try:
        products_service.delete_product(product_id)
    except SERVICE_ERRORS as e:
        return error_response(e)

    return {"ok": True}, 200


@products_bp.post("/<int:product_id>/stock")
def adjust_stock_route(product_id: int):
    """
    Adjust stock by a signed delta.

    Request body: {"delta": -2}

    The result never goes below zero.
    """
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.adjust_stock(product_id, payload.get("delta"))
    except SERVICE_ERRORS as e:
        return error_response(e)

    return product.to_dict(), 200
