"""
Inquiry Mailer - Renders and sends inquiry notifications via Mailjet.

One message goes to the sales team with the full configuration and price
breakdown; a confirmation goes to the customer unless disabled.
"""
import html
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, Field
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config.settings import Settings
from ..engine.models import PriceBreakdown
from ..errors import NotificationError

logger = logging.getLogger(__name__)

MAILJET_SEND_URL = 'https://api.mailjet.com/v3.1/send'
MAILJET_CHECK_URL = 'https://api.mailjet.com/v3/REST/contact'
COMPANY_NAME = 'AM & PM GLOBAL INTERNATIONAL d.o.o.'
COMPANY_ADDRESS = 'Gradnikove Brigade 19, SI-5000 Nova Gorica, Slovenia'


def _new_inquiry_id() -> str:
    return f"INQ-{uuid.uuid4().hex[:8].upper()}"


class Inquiry(BaseModel):
    """A submitted inquiry; lives only for the duration of dispatch."""
    model_config = ConfigDict(populate_by_name=True)

    product_type: str = 'dimensioned'
    dimension: Optional[str] = None
    delivery_days: Optional[int] = None
    advance_payment: str = 'none'
    quantity: int = 1
    name: str = Field(min_length=1)
    email: str = Field(min_length=3, pattern=r'^[^@\s]+@[^@\s]+$')
    note: str = ''
    price: Optional[float] = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    inquiry_id: str = Field(default_factory=_new_inquiry_id, alias='inquiryId')

    @property
    def product_label(self) -> str:
        if self.product_type == 'dimensioned':
            return 'Custom Dimensioned Table'
        return self.product_type.replace('_', ' ').upper()

    @property
    def dimension_label(self) -> str:
        if self.product_type == 'dimensioned' and self.dimension:
            return f"{self.dimension} cm"
        return 'Standard size'

    @property
    def advance_label(self) -> str:
        if self.advance_payment == 'none':
            return 'No advance payment'
        return f"{self.advance_payment}% advance"


BreakdownLike = Union[PriceBreakdown, Mapping[str, Any]]


def _breakdown_dict(breakdown: Optional[BreakdownLike]) -> Optional[dict]:
    if breakdown is None:
        return None
    if isinstance(breakdown, PriceBreakdown):
        return breakdown.to_dict()
    return dict(breakdown)


def _esc(value: Any) -> str:
    return html.escape('' if value is None else str(value))


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _money(value: Any) -> str:
    try:
        return f"€{float(value):g}"
    except (TypeError, ValueError):
        return '€0'


def _row(label: str, value: str, color: str = '') -> str:
    style = f' style="text-align: right; color: {color};"' if color else ' style="text-align: right;"'
    return f'<tr><td style="padding: 4px 0;">{label}</td><td{style}>{value}</td></tr>'


def render_breakdown(breakdown: Optional[BreakdownLike]) -> str:
    """HTML table for a price breakdown; empty when there is none."""
    data = _breakdown_dict(breakdown)
    if not data:
        return ''
    adj = data.get('adjustments')
    if not isinstance(adj, Mapping):
        adj = {}
    bulk = _amount(adj.get('bulk_discount_total', adj.get('two_pcs_line_discount_total')))
    line_adj = _amount(adj.get('custom_line_adjust', adj.get('custom_line_adjust_eur')))

    rows = [
        _row('Base Price:', _money(data.get('base'))),
        _row('Startup Discount:', f"-{_money(adj.get('startup_discount'))}", '#dc2626'),
        _row('First Order Discount:', f"-{_money(adj.get('first_order_discount'))}", '#dc2626'),
        _row('Delivery Surcharge:', f"+{_money(adj.get('delivery_surcharge'))}"),
        _row('Advance Payment Discount:', f"-{_money(adj.get('advance_payment_discount'))}", '#dc2626'),
    ]
    if bulk > 0:
        rows.append(_row('Bulk Discount:', f"-{_money(bulk)}", '#dc2626'))
    if line_adj != 0:
        rows.append(_row('Quote Adjustment:', _money(line_adj)))
    rows.append(
        '<tr style="border-top: 2px solid #1e40af; font-weight: bold; font-size: 16px;">'
        f'<td style="padding: 8px 0;">TOTAL:</td>'
        f'<td style="text-align: right; color: #059669;">{_money(data.get("total"))}</td></tr>'
    )
    return (
        '<div style="background: white; padding: 20px; border-radius: 12px;">'
        '<h2 style="color: #1e40af; margin-top: 0;">Price Breakdown</h2>'
        '<table style="width: 100%; border-collapse: collapse; font-size: 14px;">'
        + ''.join(rows) +
        '</table></div>'
    )


def _estimated_total(inquiry: Inquiry, breakdown: Optional[BreakdownLike]) -> Optional[float]:
    data = _breakdown_dict(breakdown)
    if data and data.get('total') is not None:
        return data['total']
    return inquiry.price


def render_company_email(inquiry: Inquiry, breakdown: Optional[BreakdownLike] = None) -> str:
    """Sales-team notification body."""
    total = _estimated_total(inquiry, breakdown)
    config_rows = [
        ('Product Type', _esc(inquiry.product_label)),
        ('Dimensions', _esc(inquiry.dimension_label)),
        ('Quantity', _esc(inquiry.quantity)),
        ('Delivery Time', f"{_esc(inquiry.delivery_days)} days"),
        ('Advance Payment', _esc(inquiry.advance_label)),
    ]
    if total is not None:
        config_rows.append(('Estimated Total', _money(total)))
    customer_rows = [
        ('Name', _esc(inquiry.name)),
        ('Email', f'<a href="mailto:{_esc(inquiry.email)}">{_esc(inquiry.email)}</a>'),
        ('Submitted', _esc(inquiry.timestamp)),
    ]
    note = ''
    if inquiry.note:
        note = (
            '<div style="margin-top: 15px;"><strong>Additional Notes:</strong>'
            f'<div style="background: #f1f5f9; padding: 10px; border-radius: 6px;">{_esc(inquiry.note)}</div></div>'
        )

    def table(rows):
        return '<table style="width: 100%; border-collapse: collapse;">' + ''.join(
            f'<tr><td style="padding: 8px 0;"><strong>{label}:</strong></td><td>{value}</td></tr>'
            for label, value in rows
        ) + '</table>'

    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<div style="background: #1e40af; color: white; padding: 20px; text-align: center;">'
        '<h1 style="margin: 0; font-size: 24px;">New INOX Table Inquiry</h1>'
        f'<p style="margin: 10px 0 0 0;">ID: {_esc(inquiry.inquiry_id)}</p></div>'
        '<div style="padding: 30px; background: #f8fafc;">'
        '<h2 style="color: #1e40af;">Product Configuration</h2>' + table(config_rows) +
        '<h2 style="color: #1e40af;">Customer Information</h2>' + table(customer_rows) + note +
        render_breakdown(breakdown) +
        '</div>'
        f'<div style="background: #1e40af; color: white; padding: 20px; text-align: center;">{COMPANY_NAME}<br>'
        f'<small>{COMPANY_ADDRESS}</small></div></div>'
    )


def render_customer_email(inquiry: Inquiry, breakdown: Optional[BreakdownLike] = None) -> str:
    """Customer confirmation body."""
    total = _estimated_total(inquiry, breakdown)
    items = [
        ('Product', _esc(inquiry.product_label)),
        ('Dimensions', _esc(inquiry.dimension_label)),
        ('Quantity', _esc(inquiry.quantity)),
        ('Delivery', f"{_esc(inquiry.delivery_days)} days"),
        ('Payment', _esc(inquiry.advance_label)),
    ]
    if total is not None:
        items.append(('Estimated Total', _money(total)))
    summary = ''.join(f'<li style="padding: 5px 0;"><strong>{k}:</strong> {v}</li>' for k, v in items)

    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<div style="background: #1e40af; color: white; padding: 20px; text-align: center;">'
        '<h1 style="margin: 0; font-size: 24px;">Thank You for Your Inquiry!</h1>'
        f'<p style="margin: 10px 0 0 0;">Reference ID: {_esc(inquiry.inquiry_id)}</p></div>'
        '<div style="padding: 30px; background: #f8fafc;">'
        f'<h2 style="color: #1e40af;">Hello {_esc(inquiry.name)}!</h2>'
        '<p>Thank you for your interest in our INOX tables. We have received your inquiry '
        'and our sales team will prepare a detailed quote for you.</p>'
        '<h3 style="color: #1e40af;">Your Configuration Summary:</h3>'
        f'<ul style="list-style: none; margin: 0; padding: 15px; background: #f1f5f9;">{summary}</ul>'
        '<h3 style="color: #1e40af;">What happens next?</h3><ol>'
        '<li>Our sales team will review your requirements and prepare a detailed quote</li>'
        '<li>You will receive a comprehensive proposal via email within 24 hours</li>'
        '<li>We will contact you to discuss any questions and finalize your order</li>'
        '</ol></div>'
        f'<div style="background: #1e40af; color: white; padding: 20px; text-align: center;">{COMPANY_NAME}<br>'
        f'<small>office-international@ampm.si | +386 41 643 189<br>{COMPANY_ADDRESS}</small></div></div>'
    )


class MailjetTransport:
    """Mailjet v3.1 send API client with retries on throttling and 5xx."""

    def __init__(self, public_key: str, private_key: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (public_key, private_key)
        read_retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({'GET'}),
        )
        self.session.mount('https://', HTTPAdapter(max_retries=read_retry))
        # A send may already be accepted when a 5xx or read timeout comes back;
        # only throttling responses are safe to resend.
        send_retry = Retry(
            total=3,
            read=0,
            respect_retry_after_header=False,
            backoff_factor=0.5,
            status_forcelist=(429,),
            allowed_methods=frozenset({'POST'}),
        )
        self.session.mount(MAILJET_SEND_URL, HTTPAdapter(max_retries=send_retry))

    def send(self, sender: dict, recipients: list[dict], subject: str, html_body: str) -> dict:
        payload = {
            'Messages': [{
                'From': sender,
                'To': recipients,
                'Subject': subject,
                'HTMLPart': html_body,
            }]
        }
        try:
            response = self.session.post(MAILJET_SEND_URL, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f"Mailjet request failed: {e}") from e
        if not response.ok:
            logger.error("Mailjet API error %s %s: %s", response.status_code, response.reason, response.text)
            raise NotificationError(f"Mailjet API error: {response.status_code} {response.reason}")
        return response.json()

    def check(self) -> None:
        """Raise NotificationError unless the credentials are accepted."""
        try:
            response = self.session.get(MAILJET_CHECK_URL, params={'Limit': 1}, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f"Mailjet request failed: {e}") from e
        if not response.ok:
            raise NotificationError(f"HTTP {response.status_code}: {response.reason}")


class InquiryMailer:
    """Sends inquiry notifications to the sales team and the customer."""

    def __init__(self, settings: Settings, transport=None):
        self.settings = settings
        if transport is None and settings.mail_configured:
            transport = MailjetTransport(settings.mailjet_public_key, settings.mailjet_private_key)
        self.transport = transport

    def send_inquiry(self, inquiry: Inquiry, breakdown: Optional[BreakdownLike] = None) -> list[str]:
        """
        Send the notification(s) for one inquiry.

        Returns the recipient addresses that were mailed.
        """
        if self.transport is None:
            raise NotificationError(
                "Mailjet configuration missing: MJ_APIKEY_PUBLIC and MJ_APIKEY_PRIVATE are required"
            )

        sent = []
        self.transport.send(
            {'Email': self.settings.email_from, 'Name': 'INOX Table Configurator'},
            [{'Email': self.settings.email_to, 'Name': 'AM & PM Sales Team'}],
            f"New INOX Table Inquiry - {inquiry.inquiry_id} - {inquiry.product_label}",
            render_company_email(inquiry, breakdown),
        )
        sent.append(self.settings.email_to)

        if self.settings.email_customer_copy:
            self.transport.send(
                {'Email': self.settings.email_from, 'Name': 'AM & PM Global International'},
                [{'Email': inquiry.email, 'Name': inquiry.name}],
                f"Your INOX Table Inquiry Confirmation - {inquiry.inquiry_id}",
                render_customer_email(inquiry, breakdown),
            )
            sent.append(inquiry.email)

        logger.info("Inquiry %s mailed to %s", inquiry.inquiry_id, ", ".join(sent))
        return sent

    def test_connection(self) -> dict:
        """Check the mail provider credentials."""
        if self.transport is None:
            return {'success': False, 'message': 'Mailjet API keys not configured'}
        try:
            self.transport.check()
        except NotificationError as e:
            logger.warning("Mailjet connection check failed: %s", e)
            return {'success': False, 'message': f"Mailjet connection failed: {e}"}
        return {'success': True, 'message': 'Mailjet connection verified'}
