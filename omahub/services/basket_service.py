"""Basket service - persistent basket operations (one open basket per user)."""

import logging
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session, selectinload
from omahub.models import Basket, BasketItem, BasketStatus, Product
from omahub.exceptions import BusinessLogicError, NotFoundError, UnauthorizedError, SubmissionInProgressError

logger = logging.getLogger(__name__)

BASKET_CACHE_MODULE = 'basket'


def get_open_baskets(session: Session, user_id: str) -> List[Basket]:
    """Load the user's open baskets with items, products and brands."""
    return session.query(Basket).options(
        selectinload(Basket.items).selectinload(BasketItem.product).selectinload(Product.brand)
    ).filter(
        Basket.user_id == user_id,
        Basket.status == BasketStatus.OPEN.value
    ).order_by(Basket.created_at).all()


def get_or_create_basket(session: Session, user_id: str) -> Basket:
    """
    Get the user's open basket or create one.
    Baskets are created implicitly on first add-to-basket.
    """
    basket = session.query(Basket).filter(
        Basket.user_id == user_id,
        Basket.status == BasketStatus.OPEN.value
    ).order_by(Basket.created_at).first()

    if not basket:
        basket = Basket(user_id=user_id, status=BasketStatus.OPEN.value)
        session.add(basket)
        session.flush()
        logger.info(f"[BASKET] Created basket {basket.id} for user {user_id}")

    return basket


def parse_quantity(raw_value, default: Optional[int] = None) -> int:
    """Validate a quantity coming from a JSON body. Must be a positive integer."""
    if raw_value is None:
        if default is None:
            raise BusinessLogicError('Quantity is required')
        return default
    if isinstance(raw_value, bool):
        raise BusinessLogicError('Quantity must be a positive integer')
    try:
        quantity = int(raw_value)
    except (TypeError, ValueError):
        raise BusinessLogicError('Quantity must be a positive integer')
    if quantity != raw_value and str(quantity) != str(raw_value).strip():
        raise BusinessLogicError('Quantity must be a positive integer')
    if quantity <= 0:
        raise BusinessLogicError('Quantity must be a positive integer')
    return quantity


def add_item(
    session: Session,
    user_id: str,
    product_id: str,
    quantity: int = 1,
    size: Optional[str] = None,
    colour: Optional[str] = None,
    notes: Optional[str] = None
) -> BasketItem:
    """Add product to the basket or bump the quantity of a matching line."""
    if not product_id:
        raise BusinessLogicError('Product ID is required')

    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError('Product not found')

    basket = get_or_create_basket(session, user_id)

    item = session.query(BasketItem).filter(
        BasketItem.basket_id == basket.id,
        BasketItem.product_id == product_id,
        BasketItem.size.is_(None) if size is None else BasketItem.size == size,
        BasketItem.colour.is_(None) if colour is None else BasketItem.colour == colour
    ).first()

    if item:
        item.quantity += quantity
        if notes:
            item.notes = notes
    else:
        item = BasketItem(
            basket_id=basket.id,
            product_id=product.id,
            quantity=quantity,
            size=size,
            colour=colour,
            notes=notes,
            price=product.effective_price
        )
        session.add(item)

    session.commit()
    logger.info(f"[BASKET] User {user_id} added product {product_id} x{quantity}")
    return item


def _get_owned_item(session: Session, user_id: str, item_id: str) -> BasketItem:
    """Get a basket item only if it sits in one of the user's open baskets."""
    item = session.query(BasketItem).join(Basket).filter(
        BasketItem.id == item_id,
        Basket.user_id == user_id,
        Basket.status == BasketStatus.OPEN.value
    ).first()
    if not item:
        raise NotFoundError('Basket item not found')
    return item


def update_item_quantity(session: Session, user_id: str, item_id: str, quantity: int) -> BasketItem:
    """Set the quantity of a basket line."""
    if not item_id:
        raise BusinessLogicError('Item ID and quantity are required')
    item = _get_owned_item(session, user_id, item_id)
    item.quantity = quantity
    session.commit()
    return item


def remove_item(session: Session, user_id: str, item_id: str) -> None:
    """Remove one line from the basket."""
    if not item_id:
        raise BusinessLogicError('Item ID is required')
    item = _get_owned_item(session, user_id, item_id)
    session.delete(item)
    session.commit()


def clear_basket(session: Session, user_id: str, basket_id: str) -> None:
    """
    Delete a basket and all of its items.

    Raises:
        BusinessLogicError: no basket id given
        NotFoundError: basket does not exist
        UnauthorizedError: basket belongs to someone else
        SubmissionInProgressError: basket is being submitted
    """
    if not basket_id:
        raise BusinessLogicError('Basket ID is required')

    basket = session.query(Basket).filter(Basket.id == basket_id).first()
    if not basket:
        raise NotFoundError('Basket not found')

    if basket.user_id != user_id:
        logger.warning(f"[BASKET] User {user_id} tried to clear basket {basket_id} of another user")
        raise UnauthorizedError('Unauthorized')

    if basket.status == BasketStatus.SUBMITTING.value:
        raise SubmissionInProgressError()
    if basket.status != BasketStatus.OPEN.value:
        raise NotFoundError('Basket not found')

    session.delete(basket)
    session.commit()
    logger.info(f"[BASKET] Basket {basket_id} cleared for user {user_id}")


def serialize_basket(basket: Basket) -> Dict[str, Any]:
    """JSON-ready basket with nested items and product summaries."""
    items = []
    for item in basket.items:
        product = item.product
        items.append({
            'id': item.id,
            'basket_id': item.basket_id,
            'product_id': item.product_id,
            'quantity': item.quantity,
            'size': item.size,
            'colour': item.colour,
            'notes': item.notes,
            'price': float(item.unit_price),
            'created_at': item.created_at.isoformat() if item.created_at else None,
            'products': {
                'id': product.id,
                'title': product.title,
                'price': float(product.price) if product.price is not None else None,
                'sale_price': float(product.sale_price) if product.sale_price is not None else None,
                'image': product.image,
                'brand': {'id': product.brand.id, 'name': product.brand.name} if product.brand else None,
            } if product else None,
        })

    return {
        'id': basket.id,
        'user_id': basket.user_id,
        'status': basket.status,
        'total_items': basket.total_items,
        'total_price': float(basket.total_price),
        'created_at': basket.created_at.isoformat() if basket.created_at else None,
        'basket_items': items,
    }


def get_basket_summary(session: Session, user_id: str) -> List[Dict[str, Any]]:
    """Serialized open baskets for the user."""
    return [serialize_basket(b) for b in get_open_baskets(session, user_id)]


def invalidate_basket_cache(user_id: str) -> None:
    """Gracefully attempt to invalidate the basket cache."""
    try:
        from omahub.services.cache_service import get_cache
        get_cache().invalidate_module(user_id, BASKET_CACHE_MODULE)
    except Exception as e:
        logger.warning(f"[BASKET] Cache invalidation failed for user {user_id}: {e}")
