"""
Integration tests for authentication (session cookie, bearer token fallback, CSRF).
"""

import pytest
from omahub.models import AppUser, Profile
from omahub.services.auth_service import issue_api_token


class TestSignup:

    def test_creates_user_and_profile(self, client, session):
        response = client.post('/api/auth/signup', json={
            'email': 'New.User@Test.com',
            'password': 'securepass123',
            'full_name': 'New User',
            'phone': '+44 7000 000000',
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['user']['email'] == 'new.user@test.com'
        assert data['token']

        user = session.query(AppUser).filter_by(email='new.user@test.com').one()
        profile = session.query(Profile).filter_by(id=user.id).one()
        assert profile.full_name == 'New User'
        assert profile.phone == '+44 7000 000000'

        # Signed in straight away
        assert client.get('/api/basket').status_code == 200

    def test_duplicate_email(self, client, customer):
        response = client.post('/api/auth/signup', json={'email': 'ada@test.com', 'password': 'password123'})

        assert response.status_code == 409

    @pytest.mark.parametrize('payload', [
        {'email': 'not-an-email', 'password': 'password123'},
        {'email': 'ok@test.com', 'password': '123'},
    ])
    def test_validation(self, client, payload):
        assert client.post('/api/auth/signup', json=payload).status_code == 400


class TestLogin:

    def test_valid_credentials(self, client, customer):
        response = client.post('/api/auth/login', json={'email': 'ada@test.com', 'password': 'password123'})

        assert response.status_code == 200
        assert response.get_json()['user']['id'] == customer.id
        assert client.get('/api/basket').status_code == 200

    def test_wrong_password(self, client, customer):
        response = client.post('/api/auth/login', json={'email': 'ada@test.com', 'password': 'wrong'})

        assert response.status_code == 401
        assert response.get_json() == {'error': 'Invalid email or password'}

    def test_inactive_user(self, client, session, customer):
        session.query(AppUser).filter_by(id=customer.id).one().active = False
        session.commit()

        response = client.post('/api/auth/login', json={'email': 'ada@test.com', 'password': 'password123'})

        assert response.status_code == 401

    def test_logout(self, client, customer):
        client.post('/api/auth/login', json={'email': 'ada@test.com', 'password': 'password123'})

        assert client.post('/api/auth/logout').status_code == 200
        assert client.get('/api/basket').status_code == 401


class TestBearerToken:

    def _token(self, client):
        response = client.post('/api/auth/login', json={'email': 'ada@test.com', 'password': 'password123'})
        return response.get_json()['token']

    def test_token_without_cookie(self, app, customer):
        token = self._token(app.test_client())

        fresh = app.test_client()
        response = fresh.get('/api/basket', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 200

    def test_session_wins_over_token(self, app, client, login, make_user, make_brand, make_product,
                                     make_basket, customer):
        make_basket(customer, [(make_product(make_brand()), 1)])
        token = self._token(app.test_client())
        login(make_user(email='other@test.com'))

        response = client.get('/api/basket', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 200
        assert response.get_json() == {'baskets': []}

    def test_tampered_token(self, app, customer):
        token = self._token(app.test_client())

        response = app.test_client().get('/api/basket', headers={'Authorization': f'Bearer {token}x'})

        assert response.status_code == 401

    def test_stale_session_falls_back_to_token(self, app, client, customer):
        token = self._token(app.test_client())
        with client.session_transaction() as sess:
            sess['user_id'] = 'deleted-user'

        response = client.get('/api/basket', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 200


class TestCsrf:

    @pytest.fixture
    def csrf_on(self, app, monkeypatch):
        monkeypatch.setitem(app.config, 'WTF_CSRF_ENABLED', True)
        return app

    def test_cookie_request_without_token_rejected(self, csrf_on, auth_client):
        response = auth_client.post('/api/basket/submit')

        assert response.status_code == 400
        assert response.get_json() == {'error': 'Invalid or missing CSRF token'}

    def test_cookie_request_with_token(self, csrf_on, auth_client):
        token = auth_client.get('/api/auth/csrf-token').get_json()['csrf_token']

        response = auth_client.post('/api/basket/submit', headers={'X-CSRFToken': token})

        # Passed the CSRF check; fails on the empty basket instead
        assert response.status_code == 400
        assert response.get_json() == {'error': 'No baskets found'}

    def test_bearer_request_skips_csrf(self, csrf_on, app, customer):
        with app.test_request_context():
            token = issue_api_token(customer)

        response = app.test_client().post('/api/basket/submit', headers={'Authorization': f'Bearer {token}'})

        assert response.get_json() == {'error': 'No baskets found'}

    def test_anonymous_request_is_401_not_csrf(self, csrf_on, client):
        response = client.post('/api/basket/submit')

        assert response.status_code == 401
        assert response.get_json() == {'error': 'Authentication required - please log in again'}

    def test_invalid_bearer_token_is_401_not_csrf(self, csrf_on, client):
        response = client.post('/api/basket/submit', headers={'Authorization': 'Bearer garbage'})

        assert response.status_code == 401
        assert response.get_json() == {'error': 'Authentication required - please log in again'}

    def test_login_requires_csrf_token(self, csrf_on, client, customer):
        response = client.post('/api/auth/login', json={'email': 'ada@test.com', 'password': 'password123'})

        assert response.status_code == 400
        assert response.get_json() == {'error': 'Invalid or missing CSRF token'}

        token = client.get('/api/auth/csrf-token').get_json()['csrf_token']
        response = client.post(
            '/api/auth/login',
            json={'email': 'ada@test.com', 'password': 'password123'},
            headers={'X-CSRFToken': token}
        )
        assert response.status_code == 200
