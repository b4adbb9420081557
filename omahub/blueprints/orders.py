"""Orders blueprint - a customer's own orders."""
from flask import Blueprint, jsonify, request, g
from omahub.database import get_session
from omahub.middleware import require_login
from omahub.services.order_service import get_user_orders, serialize_order

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('', methods=['GET'])
@require_login
def list_orders():
    limit = request.args.get('limit', 50, type=int)
    orders = get_user_orders(get_session(), g.user.id, limit=max(1, min(limit, 200)))
    return jsonify({'orders': [serialize_order(o) for o in orders]})
