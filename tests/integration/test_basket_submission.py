"""
Integration tests for POST /api/basket/submit (splitting a basket into per-brand orders).
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from omahub.models import (
    Basket, BasketItem, BasketStatus, Order, OrderItem, Notification
)
from omahub.services import order_service
from omahub.services.auth_service import issue_api_token


SUBMIT_URL = '/api/basket/submit'


def _counts(session):
    return (
        session.query(Order).count(),
        session.query(OrderItem).count(),
        session.query(Notification).count(),
    )


@pytest.fixture
def two_brand_basket(make_user, make_brand, make_product, make_basket, customer):
    """
    Brand A (owned, GBP) with a 10.00 product x2; brand B (no owner, Lagos) with a 5.00 product x1.
    """
    owner = make_user(email='owner@test.com', full_name='Brand Owner')
    brand_a = make_brand(name='Atelier', owner=owner, currency='GBP')
    brand_b = make_brand(name='Kente House', location='Lagos')
    p1 = make_product(brand_a, title='Dress', price='10.00')
    p2 = make_product(brand_b, title='Wrap', price='5.00')
    basket = make_basket(customer, [(p1, 2), (p2, 1)])
    return {
        'owner_id': owner.id,
        'brand_a_id': brand_a.id,
        'brand_b_id': brand_b.id,
        'basket_id': basket.id,
    }


class TestSubmissionPreconditions:

    def test_unauthenticated_is_rejected(self, client, session, two_brand_basket):
        response = client.post(SUBMIT_URL)

        assert response.status_code == 401
        assert response.get_json() == {'error': 'Authentication required - please log in again'}
        assert _counts(session) == (0, 0, 0)
        assert session.query(Basket).filter_by(id=two_brand_basket['basket_id']).count() == 1

    def test_no_baskets(self, auth_client, session):
        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 400
        assert response.get_json() == {'error': 'No baskets found'}
        assert _counts(session) == (0, 0, 0)

    def test_basket_without_items(self, auth_client, session, make_basket, customer):
        make_basket(customer, [])

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 400
        assert response.get_json() == {'error': 'No baskets found'}
        assert _counts(session) == (0, 0, 0)

    def test_missing_profile(self, client, login, session, make_user, make_brand, make_product, make_basket):
        user = make_user(with_profile=False)
        basket = make_basket(user, [(make_product(make_brand()), 1)])
        basket_id = basket.id
        login(user)

        response = client.post(SUBMIT_URL)

        assert response.status_code == 500
        assert response.get_json() == {'error': 'Failed to fetch user profile'}
        assert _counts(session) == (0, 0, 0)
        assert session.query(Basket).filter_by(id=basket_id).first().status == BasketStatus.OPEN.value


class TestOrderSplitting:

    def test_one_order_per_brand(self, auth_client, session, customer, two_brand_basket):
        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['message'] == 'Basket submitted successfully'
        assert data['user'] == {'id': customer.id, 'email': 'ada@test.com'}
        assert data['customer_email_sent'] is True

        orders = {o['brand_name']: o for o in data['orders']}
        assert set(orders) == {'Atelier', 'Kente House'}
        assert orders['Atelier']['total'] == 20.0
        assert orders['Atelier']['currency'] == 'GBP'
        assert orders['Atelier']['items_count'] == 1
        assert orders['Kente House']['total'] == 5.0
        assert orders['Kente House']['currency'] == 'NGN'

        # Only brand A has an owner
        assert data['notifications_sent'] == 1

    def test_orders_persisted_with_customer_details(self, auth_client, session, two_brand_basket):
        auth_client.post(SUBMIT_URL)

        order = session.query(Order).filter_by(brand_id=two_brand_basket['brand_a_id']).one()
        assert order.status == 'pending'
        assert order.total_amount == Decimal('20.00')
        assert order.customer_name == 'Ada Obi'
        assert order.customer_email == 'ada@test.com'
        assert order.customer_phone == '+234 800 000 0000'
        assert order.delivery_address == {'line1': '1 Marina', 'city': 'Lagos'}
        assert order.customer_notes == 'Order submitted from basket'

        assert len(order.items) == 1
        assert order.items[0].quantity == 2
        assert order.items[0].price == Decimal('10.00')

    def test_order_totals_match_items(self, auth_client, session, two_brand_basket):
        auth_client.post(SUBMIT_URL)

        for order in session.query(Order).all():
            assert order.total_amount == sum((i.price * i.quantity for i in order.items), Decimal('0'))

    def test_basket_cleared(self, auth_client, session, customer, two_brand_basket):
        auth_client.post(SUBMIT_URL)

        assert session.query(Basket).filter_by(user_id=customer.id).count() == 0
        assert session.query(BasketItem).count() == 0

    def test_brand_owner_notified(self, auth_client, session, two_brand_basket):
        auth_client.post(SUBMIT_URL)

        notifications = session.query(Notification).all()
        assert len(notifications) == 1
        note = notifications[0]
        order = session.query(Order).filter_by(brand_id=two_brand_basket['brand_a_id']).one()

        assert note.user_id == two_brand_basket['owner_id']
        assert note.brand_id == two_brand_basket['brand_a_id']
        assert note.type == 'new_order'
        assert note.title == 'New Order Received'
        assert note.message == 'You have received a new order for £20.00 from Ada Obi'
        assert note.is_read is False
        assert note.data['order_id'] == order.id
        assert note.data['items_count'] == 1
        assert note.data['customer_email'] == 'ada@test.com'

    def test_sale_price_used(self, auth_client, session, customer, make_brand, make_product, make_basket):
        product = make_product(make_brand(currency='GBP'), price='10.00', sale_price='8.00')
        make_basket(customer, [(product, 3)])

        data = auth_client.post(SUBMIT_URL).get_json()

        assert data['orders'][0]['total'] == 24.0

    def test_default_currency_when_unknown(self, auth_client, customer, make_brand, make_product, make_basket):
        make_basket(customer, [(make_product(make_brand()), 1)])

        data = auth_client.post(SUBMIT_URL).get_json()

        assert data['orders'][0]['currency'] == 'GBP'

    def test_customer_name_falls_back_to_email(self, client, login, session, make_user,
                                               make_brand, make_product, make_basket):
        user = make_user(email='nina@test.com', full_name=None)
        make_basket(user, [(make_product(make_brand()), 1)])
        login(user)

        client.post(SUBMIT_URL)

        assert session.query(Order).one().customer_name == 'nina'

    def test_each_basket_split_separately(self, auth_client, session, customer, make_brand, make_product, make_basket):
        brand = make_brand(name='Atelier')
        product = make_product(brand, price='10.00')
        make_basket(customer, [(product, 1)])
        make_basket(customer, [(product, 2)])

        data = auth_client.post(SUBMIT_URL).get_json()

        assert sorted(o['total'] for o in data['orders']) == [10.0, 20.0]
        assert session.query(Basket).filter_by(user_id=customer.id).count() == 0


class TestOrphanedItems:

    def test_orphans_skipped(self, auth_client, session, customer, make_brand, make_product, make_basket):
        brand = make_brand(name='Atelier')
        make_basket(customer, [
            (make_product(brand, price='4.00'), 1),
            (make_product(None, price='9.00'), 1),
            (None, 1),
        ])

        data = auth_client.post(SUBMIT_URL).get_json()

        assert [o['brand_name'] for o in data['orders']] == ['Atelier']
        assert data['orders'][0]['total'] == 4.0
        assert session.query(OrderItem).count() == 1
        assert session.query(Basket).filter_by(user_id=customer.id).count() == 0

    def test_only_orphans_keeps_basket(self, auth_client, session, customer, make_product, make_basket):
        basket = make_basket(customer, [(make_product(None), 1), (None, 1)], price='3.00')
        basket_id = basket.id

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 500
        assert response.get_json() == {'error': 'No valid orders could be created'}
        assert _counts(session) == (0, 0, 0)
        kept = session.query(Basket).filter_by(id=basket_id).first()
        assert kept.status == BasketStatus.OPEN.value
        assert len(kept.items) == 2


class TestPartialFailure:

    @pytest.fixture
    def fail_brand_a(self, monkeypatch, two_brand_basket):
        original = order_service._create_order_items

        def flaky(session, order, items):
            if order.brand_id == two_brand_basket['brand_a_id']:
                raise RuntimeError('order_item insert failed')
            return original(session, order, items)

        monkeypatch.setattr(order_service, '_create_order_items', flaky)
        return two_brand_basket

    def test_other_brands_still_ordered(self, auth_client, session, customer, fail_brand_a):
        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 200
        data = response.get_json()
        assert [o['brand_name'] for o in data['orders']] == ['Kente House']
        assert data['notifications_sent'] == 0

        # The failed brand leaves no order, item or notification behind
        assert session.query(Order).filter_by(brand_id=fail_brand_a['brand_a_id']).count() == 0
        assert session.query(OrderItem).count() == 1
        assert session.query(Notification).count() == 0

        # Default behaviour: basket cleared, failed brand's items are gone
        assert session.query(Basket).filter_by(user_id=customer.id).count() == 0

    def test_failed_items_retained_when_configured(self, app, auth_client, session, customer,
                                                   fail_brand_a, monkeypatch):
        monkeypatch.setitem(app.config, 'BASKET_RETAIN_FAILED_ITEMS', True)

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 200
        basket = session.query(Basket).filter_by(user_id=customer.id).one()
        assert basket.status == BasketStatus.OPEN.value
        assert basket.submission_token is None
        assert len(basket.items) == 1
        assert basket.items[0].product.brand_id == fail_brand_a['brand_a_id']

    def test_total_failure_keeps_basket(self, auth_client, session, two_brand_basket, monkeypatch):
        def always_fail(session, order, items):
            raise RuntimeError('database unavailable')
        monkeypatch.setattr(order_service, '_create_order_items', always_fail)

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 500
        assert response.get_json() == {'error': 'No valid orders could be created'}
        assert _counts(session) == (0, 0, 0)
        basket = session.query(Basket).filter_by(id=two_brand_basket['basket_id']).one()
        assert basket.status == BasketStatus.OPEN.value
        assert len(basket.items) == 2

    def test_notification_failure_keeps_order(self, auth_client, session, two_brand_basket, monkeypatch):
        def broken_notification(**kwargs):
            raise RuntimeError('notification insert failed')
        monkeypatch.setattr(order_service, 'Notification', broken_notification)

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 200
        data = response.get_json()
        assert len(data['orders']) == 2
        assert data['notifications_sent'] == 0
        assert session.query(Order).count() == 2
        assert session.query(OrderItem).count() == 2
        assert session.query(Notification).count() == 0


class TestDuplicateSubmission:

    def _mark_submitting(self, session, basket_id, started_at):
        basket = session.query(Basket).filter_by(id=basket_id).one()
        basket.status = BasketStatus.SUBMITTING.value
        basket.submission_started_at = started_at
        basket.submission_token = 'other-request'
        session.commit()

    def test_in_progress_submission_rejected(self, auth_client, session, two_brand_basket):
        self._mark_submitting(session, two_brand_basket['basket_id'], datetime.now(timezone.utc))

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 409
        assert response.get_json() == {'error': 'Basket submission already in progress'}
        assert _counts(session) == (0, 0, 0)
        basket = session.query(Basket).filter_by(id=two_brand_basket['basket_id']).one()
        assert basket.status == BasketStatus.SUBMITTING.value

    def test_stale_claim_is_taken_over(self, auth_client, session, two_brand_basket):
        self._mark_submitting(
            session, two_brand_basket['basket_id'], datetime.now(timezone.utc) - timedelta(hours=1)
        )

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 200
        assert len(response.get_json()['orders']) == 2

    def test_empty_open_basket_beside_claimed_one(self, auth_client, session, customer, make_basket,
                                                  two_brand_basket):
        self._mark_submitting(session, two_brand_basket['basket_id'], datetime.now(timezone.utc))
        empty_id = make_basket(customer, []).id

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 409
        assert response.get_json() == {'error': 'Basket submission already in progress'}
        assert _counts(session) == (0, 0, 0)
        empty = session.query(Basket).filter_by(id=empty_id).one()
        assert empty.status == BasketStatus.OPEN.value
        assert empty.submission_token is None

    def test_second_submission_finds_nothing(self, auth_client, session, two_brand_basket):
        assert auth_client.post(SUBMIT_URL).status_code == 200

        response = auth_client.post(SUBMIT_URL)

        assert response.status_code == 400
        assert session.query(Order).count() == 2


class TestBearerTokenFallback:

    def test_submit_with_bearer_token(self, app, client, session, customer, two_brand_basket):
        customer_id = customer.id
        with app.test_request_context():
            token = issue_api_token(customer)

        response = client.post(SUBMIT_URL, headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 200
        assert response.get_json()['user']['id'] == customer_id
        assert session.query(Order).filter_by(user_id=customer_id).count() == 2

    def test_invalid_token_rejected(self, client, session, two_brand_basket):
        response = client.post(SUBMIT_URL, headers={'Authorization': 'Bearer not-a-token'})

        assert response.status_code == 401
        assert _counts(session) == (0, 0, 0)


class TestOrdersAndMetrics:

    def test_orders_listed(self, auth_client, two_brand_basket):
        auth_client.post(SUBMIT_URL)

        response = auth_client.get('/api/orders')

        assert response.status_code == 200
        orders = response.get_json()['orders']
        assert {o['brand_name'] for o in orders} == {'Atelier', 'Kente House'}
        assert all(len(o['items']) == 1 for o in orders)

    def test_submission_counters_exposed(self, auth_client, client, two_brand_basket):
        auth_client.post(SUBMIT_URL)

        body = client.get('/metrics').get_data(as_text=True)

        assert 'basket_submissions_total{outcome="success"}' in body
        assert 'orders_created_total' in body
