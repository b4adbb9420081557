"""Studio blueprint - brand owner inbox and product management."""
from flask import Blueprint, jsonify, request, g
from omahub.database import get_session
from omahub.middleware import require_login
from omahub.services import notification_service, catalog_service
from omahub.exceptions import BusinessLogicError

studio_bp = Blueprint('studio', __name__, url_prefix='/api/studio')


@studio_bp.route('/inbox', methods=['GET'])
@require_login
def inbox():
    db_session = get_session()
    unread_only = request.args.get('unread', '').lower() in ('1', 'true', 'yes')
    limit = request.args.get('limit', 50, type=int)

    notifications = notification_service.list_notifications(
        db_session, g.user.id, unread_only=unread_only, limit=max(1, min(limit, 200))
    )
    return jsonify({
        'notifications': [notification_service.serialize_notification(n) for n in notifications],
        'unread_count': notification_service.count_unread(db_session, g.user.id),
    })


@studio_bp.route('/inbox/<notification_id>', methods=['PATCH'])
@require_login
def mark_notification(notification_id):
    data = request.get_json(silent=True) or {}
    is_read = data.get('is_read', True)
    if not isinstance(is_read, bool):
        raise BusinessLogicError('is_read must be a boolean')

    notification = notification_service.set_read(get_session(), g.user.id, notification_id, is_read)
    return jsonify({'notification': notification_service.serialize_notification(notification)})


@studio_bp.route('/products', methods=['GET'])
@require_login
def list_products():
    products = catalog_service.list_owner_products(get_session(), g.user.id)
    return jsonify({'products': [catalog_service.serialize_product(p) for p in products]})


@studio_bp.route('/products', methods=['POST'])
@require_login
def create_product():
    data = request.get_json(silent=True) or {}
    product = catalog_service.create_product(get_session(), g.user.id, data)
    return jsonify({'success': True, 'product': catalog_service.serialize_product(product)}), 201


@studio_bp.route('/products/<product_id>', methods=['PATCH'])
@require_login
def update_product(product_id):
    data = request.get_json(silent=True) or {}
    product = catalog_service.update_product(get_session(), g.user.id, product_id, data)
    return jsonify({'success': True, 'product': catalog_service.serialize_product(product)})
