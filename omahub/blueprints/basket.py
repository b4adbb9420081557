"""Basket blueprint - basket CRUD and submission into per-brand orders."""
import logging
from flask import Blueprint, request, jsonify, current_app, g
from omahub.database import get_session
from omahub.middleware import require_login
from omahub.services import basket_service, order_service
from omahub.services.basket_service import BASKET_CACHE_MODULE
from omahub.services.cache_service import get_cache
from omahub.services.email_service import send_order_confirmation_email
from omahub.blueprints.metrics import basket_submissions_total, orders_created_total
from omahub.exceptions import OmaHubError

logger = logging.getLogger(__name__)

basket_bp = Blueprint('basket', __name__, url_prefix='/api/basket')


@basket_bp.route('', methods=['GET'])
@require_login
def get_basket():
    """Current user's open baskets (cached per user)."""
    db_session = get_session()
    user_id = g.user.id

    baskets = get_cache().memoize(
        user_id,
        BASKET_CACHE_MODULE,
        'summary',
        lambda: basket_service.get_basket_summary(db_session, user_id),
        ttl=current_app.config.get('CACHE_BASKET_TTL')
    )
    return jsonify({'baskets': baskets})


@basket_bp.route('', methods=['POST'])
@require_login
def add_to_basket():
    data = request.get_json(silent=True) or {}
    db_session = get_session()

    quantity = basket_service.parse_quantity(data.get('quantity'), default=1)
    item = basket_service.add_item(
        db_session,
        g.user.id,
        data.get('product_id'),
        quantity=quantity,
        size=data.get('size'),
        colour=data.get('colour'),
        notes=data.get('notes')
    )
    basket_service.invalidate_basket_cache(g.user.id)

    return jsonify({
        'success': True,
        'item': {
            'id': item.id,
            'basket_id': item.basket_id,
            'product_id': item.product_id,
            'quantity': item.quantity,
        }
    }), 201


@basket_bp.route('', methods=['PATCH'])
@require_login
def update_basket_item():
    data = request.get_json(silent=True) or {}
    item_id = request.args.get('itemId')
    quantity = basket_service.parse_quantity(data.get('quantity'))

    item = basket_service.update_item_quantity(get_session(), g.user.id, item_id, quantity)
    basket_service.invalidate_basket_cache(g.user.id)

    return jsonify({'success': True, 'item': {'id': item.id, 'quantity': item.quantity}})


@basket_bp.route('', methods=['DELETE'])
@require_login
def remove_basket_item():
    basket_service.remove_item(get_session(), g.user.id, request.args.get('itemId'))
    basket_service.invalidate_basket_cache(g.user.id)
    return jsonify({'success': True})


@basket_bp.route('/clear', methods=['DELETE'])
@require_login
def clear_basket():
    basket_service.clear_basket(get_session(), g.user.id, request.args.get('basketId'))
    basket_service.invalidate_basket_cache(g.user.id)
    return jsonify({'success': True, 'message': 'Basket cleared successfully'})


@basket_bp.route('/submit', methods=['POST'])
@require_login
def submit_basket():
    """
    Split the user's basket into one order per brand.

    The confirmation email and cache invalidation run after the orders are
    committed; neither can fail the submission.
    """
    user = g.user
    db_session = get_session()
    config = current_app.config

    try:
        result = order_service.submit_basket(
            db_session,
            user,
            default_currency=config.get('DEFAULT_CURRENCY', 'GBP'),
            submission_timeout=config.get('BASKET_SUBMISSION_TIMEOUT', 300),
            retain_failed_items=config.get('BASKET_RETAIN_FAILED_ITEMS', False)
        )
    except OmaHubError as e:
        basket_submissions_total.labels(outcome=type(e).__name__).inc()
        raise

    orders = result['orders']
    basket_submissions_total.labels(outcome='success').inc()
    orders_created_total.inc(len(orders))

    profile = user.profile
    customer_name = order_service.resolve_customer_name(profile, user)
    customer_email_sent = send_order_confirmation_email(user.email, orders, customer_name)

    basket_service.invalidate_basket_cache(user.id)
    logger.info(
        f"[ORDERS] User {user.id} submitted basket: {len(orders)} order(s), "
        f"{result['notifications_sent']} notification(s)"
    )

    return jsonify({
        'success': True,
        'message': 'Basket submitted successfully',
        'orders': orders,
        'notifications_sent': result['notifications_sent'],
        'customer_email_sent': customer_email_sent,
        'user': {'id': user.id, 'email': user.email},
    })
