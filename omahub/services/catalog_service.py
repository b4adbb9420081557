"""
Catalog service - public brand/product reads and owner-managed products.

Brand owners (``Brand.user_id``) create and edit the products of their own
brands; anyone can read a brand and its in-stock products.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload
from omahub.models import Brand, Product
from omahub.exceptions import BusinessLogicError, NotFoundError, UnauthorizedError
from omahub.utils.currency import get_brand_currency

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('title', 'description', 'price', 'sale_price', 'category', 'image', 'in_stock', 'is_custom')


def get_brand(session: Session, brand_id: str) -> Brand:
    brand = session.query(Brand).filter(Brand.id == brand_id).first()
    if not brand:
        raise NotFoundError('Brand not found')
    return brand


def list_brand_products(session: Session, brand_id: str) -> List[Product]:
    """In-stock products of a brand, newest first."""
    get_brand(session, brand_id)
    return session.query(Product).filter(
        Product.brand_id == brand_id,
        Product.in_stock == True  # noqa: E712
    ).order_by(Product.created_at.desc()).all()


def pricing_stats(products: List[Product]) -> Dict[str, Any]:
    """
    Price summary shown on a brand page.

    Uses each product's effective price (sale price first); products without
    a positive price are left out of every average.
    """
    priced = [(p, float(p.effective_price)) for p in products if p.effective_price and p.effective_price > 0]
    stats = {
        'total_products': len(products),
        'price_range': {'min': 0, 'max': 0, 'average': 0},
        'category_averages': {},
        'custom_vs_ready': {'custom_avg': 0, 'ready_avg': 0},
        'has_pricing_data': bool(priced),
    }
    if not priced:
        return stats

    prices = [price for _, price in priced]
    stats['price_range'] = {
        'min': min(prices),
        'max': max(prices),
        'average': round(sum(prices) / len(prices), 2),
    }

    by_category: Dict[str, List[float]] = {}
    for product, price in priced:
        by_category.setdefault(product.category or 'uncategorised', []).append(price)
    stats['category_averages'] = {
        category: round(sum(values) / len(values), 2) for category, values in by_category.items()
    }

    custom = [price for product, price in priced if product.is_custom]
    ready = [price for product, price in priced if not product.is_custom]
    stats['custom_vs_ready'] = {
        'custom_avg': round(sum(custom) / len(custom), 2) if custom else 0,
        'ready_avg': round(sum(ready) / len(ready), 2) if ready else 0,
    }
    return stats


def _parse_price(value, label: str, errors: List[str]) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        errors.append(f'{label} must be a number')
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        errors.append(f'{label} must be a number')
        return None
    if not amount.is_finite() or amount < 0:
        errors.append(f'{label} must be greater than or equal to 0')
        return None
    return amount.quantize(Decimal('0.01'))


def _validate_product_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validated, normalized product fields. Raises BusinessLogicError listing every problem."""
    errors: List[str] = []
    values: Dict[str, Any] = {}

    if 'title' in data or not partial:
        title = (data.get('title') or '').strip()
        if not title:
            errors.append('Title is required')
        values['title'] = title

    for field, label in (('price', 'Price'), ('sale_price', 'Sale price')):
        if field in data:
            values[field] = _parse_price(data.get(field), label, errors)

    for field in ('description', 'category', 'image'):
        if field in data:
            values[field] = (data.get(field) or '').strip() or None

    for field in ('in_stock', 'is_custom'):
        if field in data:
            if not isinstance(data[field], bool):
                errors.append(f'{field} must be a boolean')
            else:
                values[field] = data[field]

    if errors:
        raise BusinessLogicError(', '.join(errors))
    return values


def _owned_brand(session: Session, user_id: str, brand_id: Optional[str]) -> Brand:
    if not brand_id:
        raise BusinessLogicError('Brand ID is required')
    brand = get_brand(session, brand_id)
    if brand.user_id != user_id:
        logger.warning(f"[CATALOG] User {user_id} tried to manage products of brand {brand_id}")
        raise UnauthorizedError('Insufficient permissions to manage products for this brand')
    return brand


def list_owner_products(session: Session, user_id: str) -> List[Product]:
    """Every product of the brands owned by `user_id`, newest first."""
    return session.query(Product).join(Brand).options(
        selectinload(Product.brand)
    ).filter(Brand.user_id == user_id).order_by(Product.created_at.desc()).all()


def create_product(session: Session, user_id: str, data: Dict[str, Any]) -> Product:
    brand = _owned_brand(session, user_id, data.get('brand_id'))
    values = _validate_product_data(data)

    product = Product(brand_id=brand.id, **values)
    session.add(product)
    session.commit()
    logger.info(f"[CATALOG] Product {product.id} created for brand {brand.id}")
    return product


def update_product(session: Session, user_id: str, product_id: str, data: Dict[str, Any]) -> Product:
    """Partial update; only fields present in `data` change."""
    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError('Product not found')
    if not product.brand or product.brand.user_id != user_id:
        raise UnauthorizedError('Insufficient permissions to manage products for this brand')

    values = _validate_product_data({k: v for k, v in data.items() if k in EDITABLE_FIELDS}, partial=True)
    for field, value in values.items():
        setattr(product, field, value)
    session.commit()
    logger.info(f"[CATALOG] Product {product.id} updated ({', '.join(sorted(values)) or 'no changes'})")
    return product


def serialize_brand(brand: Brand) -> Dict[str, Any]:
    currency = get_brand_currency(brand)
    return {
        'id': brand.id,
        'name': brand.name,
        'description': brand.description,
        'location': brand.location,
        'price_range': brand.price_range,
        'currency': currency.code if currency else None,
        'image': brand.image,
    }


def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        'id': product.id,
        'brand_id': product.brand_id,
        'title': product.title,
        'description': product.description,
        'price': float(product.price) if product.price is not None else None,
        'sale_price': float(product.sale_price) if product.sale_price is not None else None,
        'category': product.category,
        'image': product.image,
        'in_stock': product.in_stock,
        'is_custom': product.is_custom,
        'created_at': product.created_at.isoformat() if product.created_at else None,
    }
