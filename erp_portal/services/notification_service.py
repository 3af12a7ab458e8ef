from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from erp_portal.auth import RequestContext
from erp_portal.config import settings
from erp_portal.errors import NotificationError
from erp_portal.models import Organization, Supplier, SupplierPortalNotification
from erp_portal.services.audit_service import log_audit
from erp_portal.services.purchase_order_math_service import quantize_money
from erp_portal.services.purchase_order_service import get_purchase_order, list_purchase_order_lines

logger = logging.getLogger(__name__)

SEND_STATUS_SENT = 'SENT'
SEND_STATUS_STUB = 'STUB_SENT'


class EmailSender:
    """Plain-text SMTP sender. Without an SMTP host, messages are only logged."""

    def __init__(
        self,
        *,
        host: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        from_email: str = 'purchasing@example.com',
        use_tls: bool = True,
        timeout: int = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.use_tls = use_tls
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def send(self, *, to: str, subject: str, body: str) -> str:
        if not self.configured:
            logger.warning('SMTP not configured, would send to %s: %s', to, subject)
            return SEND_STATUS_STUB

        message = EmailMessage()
        message['Subject'] = subject
        message['From'] = self.from_email
        message['To'] = to
        message.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password or '')
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f'Failed to send email to {to}: {exc}') from exc
        logger.info('Email sent to %s: %s', to, subject)
        return SEND_STATUS_SENT


def build_email_sender() -> EmailSender:
    return EmailSender(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        from_email=settings.smtp_from_email,
        use_tls=settings.smtp_use_tls,
        timeout=settings.smtp_timeout_seconds,
    )


def get_email_sender() -> EmailSender:
    return build_email_sender()


def render_purchase_order_email(*, organization_name: str, supplier_name: str, purchase_order, lines) -> tuple[str, str]:
    currency = purchase_order.currency_code or settings.default_currency_code
    subject = f'Purchase Order {purchase_order.po_number} from {organization_name}'
    body_lines = [
        f'Dear {supplier_name},',
        '',
        f'Please find below purchase order {purchase_order.po_number} dated {purchase_order.po_date.isoformat()}.',
    ]
    if purchase_order.expected_delivery_date:
        body_lines.append(f'Expected delivery: {purchase_order.expected_delivery_date.isoformat()}')
    body_lines.append('')
    for line, product in lines:
        product_name = product.name if product else 'Unknown Product'
        line_total = quantize_money(line.quantity_ordered * line.unit_price)
        body_lines.append(f'- {product_name}: {line.quantity_ordered} x {line.unit_price} = {line_total} {currency}')
    body_lines.extend(
        [
            '',
            f'Subtotal: {purchase_order.subtotal} {currency}',
            f'Tax: {purchase_order.tax_amount} {currency}',
            f'Total: {purchase_order.total_amount} {currency}',
            '',
            'Regards,',
            organization_name,
        ]
    )
    return subject, '\n'.join(body_lines)


def send_purchase_order_email(
    db: Session,
    *,
    ctx: RequestContext,
    purchase_order_id: int,
    sender: EmailSender,
    ip: str | None = None,
) -> str:
    purchase_order = get_purchase_order(db, ctx=ctx, purchase_order_id=purchase_order_id)
    supplier = db.get(Supplier, purchase_order.supplier_id)
    if not supplier or not supplier.email:
        raise ValueError('Supplier email not found')
    organization = db.get(Organization, ctx.organization_id)
    organization_name = organization.name if organization else 'Organization'

    subject, body = render_purchase_order_email(
        organization_name=organization_name,
        supplier_name=supplier.name,
        purchase_order=purchase_order,
        lines=list_purchase_order_lines(db, purchase_order_id=purchase_order.id),
    )
    send_status = sender.send(to=supplier.email, subject=subject, body=body)

    purchase_order.email_sent_at = datetime.now(tz=timezone.utc)
    purchase_order.email_sent_by_principal_id = ctx.principal_id
    log_audit(
        db,
        organization_id=ctx.organization_id,
        actor_principal_id=ctx.principal_id,
        action='PURCHASE_ORDER_EMAIL_STUB_SENT' if send_status == SEND_STATUS_STUB else 'PURCHASE_ORDER_EMAIL_SENT',
        ip=ip,
        metadata={
            'purchase_order_id': purchase_order.id,
            'po_number': purchase_order.po_number,
            'supplier_id': supplier.id,
            'recipient': supplier.email,
            'status': send_status,
        },
    )
    db.flush()
    return send_status


def create_supplier_notification(
    db: Session,
    *,
    supplier_id: int,
    notification_type: str,
    title: str,
    message: str,
    related_entity_type: str | None = None,
    related_entity_id: int | None = None,
) -> SupplierPortalNotification:
    notification = SupplierPortalNotification(
        supplier_id=supplier_id,
        notification_type=notification_type,
        title=title,
        message=message,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        is_read=False,
    )
    db.add(notification)
    return notification


def deliver_purchase_order_email(
    db: Session,
    *,
    ctx: RequestContext,
    purchase_order_id: int,
    sender: EmailSender,
    ip: str | None = None,
) -> str | None:
    """Send the PO email after the business transaction has committed.

    Commits its own bookkeeping. Returns a warning message instead of raising.
    """
    try:
        send_purchase_order_email(db, ctx=ctx, purchase_order_id=purchase_order_id, sender=sender, ip=ip)
        db.commit()
    except (NotificationError, ValueError, SQLAlchemyError) as exc:
        db.rollback()
        logger.warning('Email for purchase order %s was not sent: %s', purchase_order_id, exc)
        return f'Purchase order created, but the supplier email could not be sent: {exc}'
    return None
