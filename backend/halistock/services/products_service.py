# backend/halistock/services/products_service.py
"""
Products Service

Catalog CRUD plus the stock adjuster. Stock is a stored counter that never
goes below zero; rentals never touch it.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Rental, Transaction
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "category",
    "size",
    "color",
    "brand",
    "description",
    "barcode",
    "purchase_price_cents",
    "sale_price_cents",
    "rental_price_per_day_cents",
    "stock",
    "is_available_for_rental",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    rentable: bool | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional filters and pagination.

    Args:
        category: exact category match
        search: substring match over name, brand and barcode
        rentable: filter on is_available_for_rental
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)
    if category:
        base_query = base_query.filter(Product.category == category)
    if rentable is not None:
        base_query = base_query.filter(Product.is_available_for_rental == rentable)
    if search:
        like = f"%{search.strip().lower()}%"
        base_query = base_query.filter(or_(
            func.lower(Product.name).like(like),
            func.lower(func.coalesce(Product.brand, "")).like(like),
            func.lower(func.coalesce(Product.barcode, "")).like(like),
        ))
    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    # Pagination logic
    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def create_product(*, patch: dict) -> Product:
    """Create product using a validated patch dict."""
    if not patch.get("name"):
        raise ValidationError("name is required")

    p = Product()
    apply_product_patch(p, patch)
    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Barcode must be unique")
    return p


def update_product(product_id: int, *, patch: dict) -> Product:
    def _op():
        p = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not p:
            raise NotFoundError(f"Product {product_id} not found")
        apply_product_patch(p, patch)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Barcode must be unique")
        return p

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """
    Delete a product that no transaction or rental references.

    Referenced products are kept so history and receipts stay intact.
    """
    def _op():
        p = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not p:
            raise NotFoundError(f"Product {product_id} not found")

        in_use = (
            db.session.query(Transaction.id).filter_by(product_id=product_id).first()
            or db.session.query(Rental.id).filter_by(product_id=product_id).first()
        )
        if in_use:
            raise ConflictError("Product has transactions or rentals and cannot be deleted")

        db.session.delete(p)
        db.session.commit()

    run_with_retry(_op)


# =============================================================================
# STOCK ADJUSTER
# =============================================================================

def apply_stock_delta(product: Product, delta: int) -> None:
    """Server-side stock change floored at 0; no commit."""
    new_stock = Product.stock + delta
    product.stock = case((new_stock < 0, 0), else_=new_stock)
    db.session.flush()


def adjust_stock(product_id: int, delta: int) -> Product:
    """
    Add `delta` (negative to remove) to a product's stock.

    The result is floored at 0.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("quantity must be an integer")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        apply_stock_delta(product, delta)
        db.session.commit()
        current_app.logger.info("Stock of product %s adjusted by %s -> %s", product_id, delta, product.stock)
        return product

    return run_with_retry(_op)


def take_stock(product: Product, quantity: int) -> None:
    """
    Remove sold units from a locked product inside the caller's unit of work.

    Raises:
        ConflictError: not enough stock
    """
    if product.stock < quantity:
        raise ConflictError(
            "Insufficient stock",
            details={"product_id": product.id, "requested_quantity": quantity, "stock": product.stock},
        )
    apply_stock_delta(product, -quantity)


def count_low_stock(threshold: int) -> int:
    return db.session.query(func.count(Product.id)).filter(Product.stock <= threshold).scalar() or 0
