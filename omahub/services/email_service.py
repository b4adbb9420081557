"""
Email service for customer order confirmations.
Uses Flask-Mail for SMTP integration with UTF-8 support.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Dict, Any
from flask import current_app
from flask_mail import Mail, Message
from omahub.utils.currency import format_price

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """
    Check if mail is properly configured and enabled.
    Prevents 500 errors in dev or misconfigured environments.
    """
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def _format_order_totals(orders: List[Dict[str, Any]]) -> str:
    """Grand total per currency, e.g. '₦45,000.00 + £20.00'."""
    totals: Dict[str, Decimal] = {}
    for order in orders:
        code = order.get('currency') or ''
        totals[code] = totals.get(code, Decimal('0')) + Decimal(str(order['total']))
    return ' + '.join(format_price(amount, code) for code, amount in totals.items())


def build_order_confirmation(orders: List[Dict[str, Any]], customer_name: str) -> Dict[str, str]:
    """Subject, text and HTML bodies for an order confirmation."""
    subject = f"Order Confirmation - {len(orders)} Order(s) Submitted"
    support_email = current_app.config.get('SUPPORT_EMAIL', 'support@oma-hub.com')
    total_label = _format_order_totals(orders)
    today = date.today().strftime('%d %B %Y')

    summary_lines = [
        f"• {o['brand_name']}: {o['items_count']} item(s) - {format_price(o['total'], o.get('currency'))}"
        for o in orders
    ]
    summary = "\n".join(summary_lines)

    html_body = f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="UTF-8"></head>
    <body>
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: #8B4513;">Order Confirmation</h2>
            <p style="color: #666; font-size: 16px;">Hi {customer_name}, thank you for your order(s)!</p>

            <div style="background-color: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
                <h3 style="color: #8B4513;">Order Summary</h3>
                <p><strong>Total Orders:</strong> {len(orders)}</p>
                <p><strong>Total Amount:</strong> {total_label}</p>
                <p><strong>Order Date:</strong> {today}</p>
            </div>

            <div style="background-color: #f9f9f9; padding: 20px; border-radius: 8px; margin: 20px 0;">
                <h3 style="color: #8B4513;">Order Details</h3>
                <div style="white-space: pre-line; font-family: monospace; background: white; padding: 10px;">
{summary}
                </div>
            </div>

            <div style="background-color: #e8f4f8; padding: 20px; border-radius: 8px; margin: 20px 0;">
                <h3 style="color: #8B4513;">What Happens Next?</h3>
                <ul>
                    <li>Each brand will contact you within 24-48 hours to confirm your order</li>
                    <li>You'll discuss any customization details, measurements, and final pricing</li>
                    <li>The brands will provide estimated completion timelines</li>
                </ul>
            </div>

            <p>Questions? Contact us at <a href="mailto:{support_email}">{support_email}</a></p>
            <p>Thank you for choosing OmaHub!</p>
        </div>
    </body>
    </html>
    """

    text_body = f"""
Hi {customer_name},

Thank you for your order(s)!

Total Orders: {len(orders)}
Total Amount: {total_label}
Order Date: {today}

{summary}

Each brand will contact you within 24-48 hours to confirm your order.

Questions? {support_email}
"""
    return {'subject': subject, 'text': text_body, 'html': html_body}


def send_order_confirmation_email(to_email: str, orders: List[Dict[str, Any]], customer_name: str) -> bool:
    """
    Send the customer a summary of the orders created from their basket.

    Returns:
        True if sent (or mail disabled), False otherwise
    """
    try:
        if not to_email or not orders:
            return False

        if not _mail_enabled():
            logger.info(f"[MAIL DISABLED] Order confirmation skipped for {to_email}")
            return True

        content = build_order_confirmation(orders, customer_name)
        msg = Message(
            subject=content['subject'],
            recipients=[to_email],
            body=content['text'],
            html=content['html'],
        )

        logger.info(f"[EMAIL] Sending order confirmation to {to_email}...")
        mail.send(msg)
        logger.info(f"[EMAIL] Order confirmation sent to {to_email}")
        return True

    except Exception as e:
        logger.exception(f"[EMAIL] Error sending order confirmation to {to_email}: {e}")
        return False
