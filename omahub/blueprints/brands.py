"""Brands blueprint - public brand page data."""
from flask import Blueprint, jsonify
from omahub.database import get_session
from omahub.services import catalog_service

brands_bp = Blueprint('brands', __name__, url_prefix='/api/brands')


@brands_bp.route('/<brand_id>', methods=['GET'])
def get_brand(brand_id):
    brand = catalog_service.get_brand(get_session(), brand_id)
    return jsonify({'brand': catalog_service.serialize_brand(brand)})


@brands_bp.route('/<brand_id>/products', methods=['GET'])
def brand_products(brand_id):
    """In-stock products plus pricing statistics for the brand page."""
    products = catalog_service.list_brand_products(get_session(), brand_id)
    return jsonify({
        'products': [catalog_service.serialize_product(p) for p in products],
        'pricing_stats': catalog_service.pricing_stats(products),
    })
