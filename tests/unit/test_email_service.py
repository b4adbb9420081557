"""
Unit tests for the order confirmation email.
"""

import pytest
from omahub.services import email_service


ORDERS = [
    {'order_id': 'o1', 'brand_name': 'Atelier', 'total': 20.0, 'currency': 'GBP', 'items_count': 1},
    {'order_id': 'o2', 'brand_name': 'Kente House', 'total': 1500.0, 'currency': 'NGN', 'items_count': 2},
]


@pytest.fixture
def mail_enabled(app, monkeypatch):
    monkeypatch.setitem(app.config, 'MAIL_SUPPRESS_SEND', False)
    monkeypatch.setitem(app.config, 'MAIL_SERVER', 'smtp.test')
    monkeypatch.setitem(app.config, 'MAIL_USERNAME', 'mailer@test.com')
    return app


class TestBuildOrderConfirmation:

    def test_content(self, app):
        with app.app_context():
            content = email_service.build_order_confirmation(ORDERS, 'Ada Obi')

        assert content['subject'] == 'Order Confirmation - 2 Order(s) Submitted'
        assert 'Hi Ada Obi' in content['text']
        assert '• Atelier: 1 item(s) - £20.00' in content['text']
        assert '• Kente House: 2 item(s) - ₦1,500.00' in content['text']
        assert '£20.00 + ₦1,500.00' in content['html']


class TestSendOrderConfirmation:

    def test_nothing_to_send(self, app):
        with app.app_context():
            assert email_service.send_order_confirmation_email('ada@test.com', [], 'Ada') is False
            assert email_service.send_order_confirmation_email('', ORDERS, 'Ada') is False

    def test_suppressed_counts_as_sent(self, app, monkeypatch):
        sent = []
        monkeypatch.setattr(email_service.mail, 'send', lambda msg: sent.append(msg))

        with app.app_context():
            assert email_service.send_order_confirmation_email('ada@test.com', ORDERS, 'Ada') is True
        assert sent == []

    def test_sends_message(self, mail_enabled, monkeypatch):
        sent = []
        monkeypatch.setattr(email_service.mail, 'send', lambda msg: sent.append(msg))

        with mail_enabled.app_context():
            assert email_service.send_order_confirmation_email('ada@test.com', ORDERS, 'Ada') is True

        assert len(sent) == 1
        assert sent[0].recipients == ['ada@test.com']
        assert sent[0].subject == 'Order Confirmation - 2 Order(s) Submitted'

    def test_smtp_failure_returns_false(self, mail_enabled, monkeypatch):
        def boom(msg):
            raise ConnectionRefusedError('smtp down')
        monkeypatch.setattr(email_service.mail, 'send', boom)

        with mail_enabled.app_context():
            assert email_service.send_order_confirmation_email('ada@test.com', ORDERS, 'Ada') is False
