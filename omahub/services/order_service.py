"""
Order service - turns a customer's basket into one order per brand.

A basket may hold products from many brands. Submitting it creates one
Order (with its OrderItems) per brand, notifies each brand owner and clears
the basket. Each brand's rows are written inside their own SAVEPOINT so an
order never appears without its items; a failing brand is logged and
skipped while the others go through.
"""
import logging
import uuid
from decimal import Decimal
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any, Optional, Tuple
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session, selectinload
from omahub.models import (
    AppUser, Profile, Basket, BasketItem, BasketStatus, Brand, Product,
    Order, OrderItem, OrderStatus, Notification
)
from omahub.exceptions import (
    EmptyBasketError, ProfileNotFoundError, NoOrdersCreatedError, SubmissionInProgressError
)
from omahub.utils.currency import get_brand_currency, format_price

logger = logging.getLogger(__name__)

FALLBACK_CUSTOMER_NAME = 'Customer'
ORDER_NOTES = 'Order submitted from basket'
NEW_ORDER_NOTIFICATION = 'new_order'


def resolve_customer_name(profile: Optional[Profile], user: AppUser) -> str:
    """Profile full name, else the local part of the email, else 'Customer'."""
    if profile is not None and profile.full_name and profile.full_name.strip():
        return profile.full_name.strip()
    return user.email_local_part or FALLBACK_CUSTOMER_NAME


def group_items_by_brand(basket: Basket) -> Dict[str, Dict[str, Any]]:
    """
    Group one basket's items by owning brand.

    Items whose product or brand cannot be resolved are dropped. Groups keep
    the order in which their brand first appears in the basket.

    Returns:
        {brand_id: {'brand': Brand, 'items': [BasketItem], 'total': Decimal}}
    """
    groups: Dict[str, Dict[str, Any]] = {}
    for item in basket.items:
        product = item.product
        brand = product.brand if product is not None else None
        if brand is None:
            logger.info(f"[ORDERS] Skipping orphaned basket item {item.id} (product {item.product_id})")
            continue

        group = groups.setdefault(brand.id, {'brand': brand, 'items': [], 'total': Decimal('0.00')})
        group['items'].append(item)
        group['total'] += item.line_total

    return groups


def submit_basket(
    session: Session,
    user: AppUser,
    default_currency: str = 'GBP',
    submission_timeout: int = 300,
    retain_failed_items: bool = False
) -> Dict[str, Any]:
    """
    Convert every basket of `user` into orders, one per (basket, brand).

    Args:
        session: SQLAlchemy session
        user: authenticated customer
        default_currency: currency for brands whose own currency is unknown
        submission_timeout: seconds after which a stuck claim may be taken over
        retain_failed_items: keep items of failed brand groups in the basket

    Returns:
        {'orders': [{'order_id', 'brand_name', 'total', 'currency', 'items_count'}],
         'notifications_sent': int}

    Raises:
        ProfileNotFoundError: user has no profile (nothing written)
        EmptyBasketError: no baskets or no basket items (nothing written)
        SubmissionInProgressError: another submission holds the baskets
        NoOrdersCreatedError: every brand group failed (basket kept)
    """
    profile = session.query(Profile).filter(Profile.id == user.id).first()
    if profile is None:
        logger.error(f"[ORDERS] No profile for user {user.id}")
        raise ProfileNotFoundError()

    baskets = _load_baskets(session, user.id)
    if not baskets or not any(basket.items for basket in baskets):
        raise EmptyBasketError()

    token = _claim_baskets(session, [b.id for b in baskets], submission_timeout)
    baskets = _load_baskets(session, user.id, token=token)
    if not any(basket.items for basket in baskets):
        # The baskets with items are held by another submission
        _release_baskets(session, token)
        logger.warning(f"[ORDERS] Submission for user {user.id} rejected: baskets already being submitted")
        raise SubmissionInProgressError()

    customer_name = resolve_customer_name(profile, user)
    created_orders: List[Dict[str, Any]] = []
    notifications_sent = 0
    failed_item_ids = set()

    for basket in baskets:
        if not basket.items:
            continue

        for brand_id, group in group_items_by_brand(basket).items():
            brand = group['brand']
            brand_name = brand.name
            item_ids = [item.id for item in group['items']]
            try:
                order, notified = _create_brand_order(session, user, profile, customer_name, group, default_currency)
                session.commit()
            except Exception as e:
                session.rollback()
                failed_item_ids.update(item_ids)
                logger.exception(f"[ORDERS] Error creating order for brand {brand_id} (user {user.id}): {e}")
                continue

            if notified:
                notifications_sent += 1

            created_orders.append({
                'order_id': order.id,
                'brand_name': brand_name,
                'total': float(order.total_amount),
                'currency': order.currency,
                'items_count': len(item_ids),
            })
            logger.info(f"[ORDERS] Order {order.id} created for brand {brand_id}: {order.total_amount} {order.currency}")

    if not created_orders:
        _release_baskets(session, token)
        logger.error(f"[ORDERS] No orders could be created for user {user.id}; basket kept")
        raise NoOrdersCreatedError()

    _clear_baskets(session, user.id, token, failed_item_ids if retain_failed_items else None)

    return {
        'orders': created_orders,
        'notifications_sent': notifications_sent,
    }


def _load_baskets(session: Session, user_id: str, token: Optional[str] = None) -> List[Basket]:
    """Load baskets with items -> product -> brand in one round of queries."""
    query = session.query(Basket).options(
        selectinload(Basket.items).selectinload(BasketItem.product).selectinload(Product.brand)
    ).filter(Basket.user_id == user_id)

    if token is None:
        query = query.filter(Basket.status.in_([BasketStatus.OPEN.value, BasketStatus.SUBMITTING.value]))
    else:
        query = query.filter(Basket.submission_token == token)

    return query.order_by(Basket.created_at).populate_existing().all()


def _claim_baskets(session: Session, basket_ids: List[str], submission_timeout: int) -> str:
    """
    Flip OPEN (or stale SUBMITTING) baskets to SUBMITTING under a fresh token.

    The conditional UPDATE is the only guard against a double submission; a
    concurrent request sees the baskets as SUBMITTING and claims nothing.
    """
    token = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    stale_before = now - timedelta(seconds=submission_timeout)

    claimed = session.query(Basket).filter(
        Basket.id.in_(basket_ids),
        or_(
            Basket.status == BasketStatus.OPEN.value,
            and_(
                Basket.status == BasketStatus.SUBMITTING.value,
                Basket.submission_started_at < stale_before
            )
        )
    ).update({
        Basket.status: BasketStatus.SUBMITTING.value,
        Basket.submission_started_at: now,
        Basket.submission_token: token,
    }, synchronize_session=False)
    session.commit()

    logger.info(f"[ORDERS] Claimed {claimed} basket(s) with token {token}")
    return token


def _release_baskets(session: Session, token: str) -> None:
    """Put claimed baskets back to OPEN so the customer can retry."""
    try:
        session.query(Basket).filter(Basket.submission_token == token).update({
            Basket.status: BasketStatus.OPEN.value,
            Basket.submission_started_at: None,
            Basket.submission_token: None,
        }, synchronize_session=False)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.exception(f"[ORDERS] Failed to release baskets for token {token}: {e}")


def _clear_baskets(session: Session, user_id: str, token: str, retain_item_ids=None) -> None:
    """
    Delete the submitted baskets (items cascade).

    With `retain_item_ids`, those items stay behind in a re-opened basket.
    A failure here is logged only: orders already exist. The baskets are then
    marked SUBMITTED so they can never be turned into orders twice.
    """
    try:
        for basket in _load_baskets(session, user_id, token=token):
            remaining = [item for item in basket.items if retain_item_ids and item.id in retain_item_ids]
            if not remaining:
                session.delete(basket)
                continue

            for item in list(basket.items):
                if item.id not in retain_item_ids:
                    basket.items.remove(item)
            basket.status = BasketStatus.OPEN.value
            basket.submission_started_at = None
            basket.submission_token = None
            logger.info(f"[ORDERS] Basket {basket.id} kept with {len(remaining)} unsubmitted item(s)")
        session.commit()
    except Exception as e:
        session.rollback()
        logger.exception(f"[ORDERS] Error clearing baskets for user {user_id}: {e}")
        _mark_baskets_submitted(session, token)


def _mark_baskets_submitted(session: Session, token: str) -> None:
    try:
        session.query(Basket).filter(Basket.submission_token == token).update(
            {Basket.status: BasketStatus.SUBMITTED.value},
            synchronize_session=False
        )
        session.commit()
    except Exception as e:
        session.rollback()
        logger.exception(f"[ORDERS] Could not mark baskets submitted for token {token}: {e}")


def _create_brand_order(
    session: Session,
    user: AppUser,
    profile: Profile,
    customer_name: str,
    group: Dict[str, Any],
    default_currency: str
) -> Tuple[Order, bool]:
    """Write one brand's Order, OrderItems and owner Notification as a unit."""
    brand = group['brand']
    currency = get_brand_currency(brand)
    currency_code = currency.code if currency else default_currency

    with session.begin_nested():
        order = Order(
            user_id=user.id,
            brand_id=brand.id,
            status=OrderStatus.PENDING.value,
            total_amount=group['total'].quantize(Decimal('0.01')),
            currency=currency_code,
            customer_name=customer_name,
            customer_email=user.email,
            customer_phone=profile.phone,
            delivery_address=profile.address or {},
            customer_notes=ORDER_NOTES
        )
        session.add(order)
        session.flush()

        _create_order_items(session, order, group['items'])
        notified = _create_order_notification(session, order, brand, customer_name, len(group['items']))

    return order, notified


def _create_order_items(session: Session, order: Order, items: List[BasketItem]) -> None:
    """Copy basket items onto the order."""
    for item in items:
        session.add(OrderItem(
            order_id=order.id,
            product_id=item.product_id,
            quantity=item.quantity,
            price=item.unit_price,
            size=item.size,
            colour=item.colour,
            notes=item.notes
        ))
    session.flush()


def _create_order_notification(
    session: Session,
    order: Order,
    brand: Brand,
    customer_name: str,
    items_count: int
) -> bool:
    """
    Notify the brand owner about a new order.

    Runs in its own SAVEPOINT: a failed notification never undoes the order.
    Returns True if a notification row was written.
    """
    if not brand.user_id:
        return False

    try:
        with session.begin_nested():
            session.add(Notification(
                user_id=brand.user_id,
                brand_id=brand.id,
                type=NEW_ORDER_NOTIFICATION,
                title='New Order Received',
                message=(
                    f"You have received a new order for "
                    f"{format_price(order.total_amount, order.currency)} from {customer_name}"
                ),
                data={
                    'order_id': order.id,
                    'brand_id': brand.id,
                    'customer_name': customer_name,
                    'total_amount': float(order.total_amount),
                    'currency': order.currency,
                    'items_count': items_count,
                    'customer_email': order.customer_email,
                    'customer_phone': order.customer_phone,
                },
                is_read=False
            ))
            session.flush()
        return True
    except Exception as e:
        logger.exception(f"[ORDERS] Error creating notification for order {order.id}: {e}")
        return False


def get_user_orders(session: Session, user_id: str, limit: int = 50) -> List[Order]:
    """Orders placed by a customer, newest first."""
    return session.query(Order).options(
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.brand)
    ).filter(
        Order.user_id == user_id
    ).order_by(Order.created_at.desc()).limit(limit).all()


def serialize_order(order: Order) -> Dict[str, Any]:
    return {
        'id': order.id,
        'brand_id': order.brand_id,
        'brand_name': order.brand.name if order.brand else None,
        'status': order.status,
        'total_amount': float(order.total_amount),
        'currency': order.currency,
        'customer_name': order.customer_name,
        'created_at': order.created_at.isoformat() if order.created_at else None,
        'items': [
            {
                'id': item.id,
                'product_id': item.product_id,
                'title': item.product.title if item.product else None,
                'quantity': item.quantity,
                'price': float(item.price),
                'size': item.size,
                'colour': item.colour,
            }
            for item in order.items
        ],
    }
