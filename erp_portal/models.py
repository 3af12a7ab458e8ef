from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only auto-increments INTEGER PRIMARY KEY columns.
BigIntPK = BigInteger().with_variant(Integer, 'sqlite')
Money = Numeric(15, 2)
Quantity = Numeric(15, 2)


class Base(DeclarativeBase):
    pass


def _enum(enum_cls: type[Enum], name: str) -> SQLEnum:
    return SQLEnum(enum_cls, name=name, values_callable=lambda members: [member.value for member in members])


class PrincipalRole(str, Enum):
    ADMIN = 'ADMIN'
    MANAGER = 'MANAGER'
    USER = 'USER'
    VIEWER = 'VIEWER'


class ReorderPriority(str, Enum):
    LOW = 'low'
    NORMAL = 'normal'
    HIGH = 'high'
    CRITICAL = 'critical'


class SuggestionStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    ORDERED = 'ordered'


class PurchaseOrderStatus(str, Enum):
    DRAFT = 'draft'
    CONFIRMED = 'confirmed'
    PARTIALLY_RECEIVED = 'partially_received'
    RECEIVED = 'received'
    CANCELLED = 'cancelled'


class StockMovementType(str, Enum):
    IN = 'IN'
    OUT = 'OUT'
    ADJUSTMENT = 'ADJUSTMENT'


class DocumentType(str, Enum):
    PURCHASE_ORDER = 'PO'
    SUPPLIER_INVOICE = 'INV'


class RfqStatus(str, Enum):
    DRAFT = 'draft'
    SENT = 'sent'
    CLOSED = 'closed'


class QuotationStatus(str, Enum):
    DRAFT = 'draft'
    SUBMITTED = 'submitted'
    UNDER_REVIEW = 'under_review'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    EXPIRED = 'expired'


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    PAID = 'paid'
    OVERDUE = 'overdue'
    CANCELLED = 'cancelled'


class SalesOrderStatus(str, Enum):
    DRAFT = 'draft'
    CONFIRMED = 'confirmed'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class SalesInvoiceStatus(str, Enum):
    DRAFT = 'draft'
    SENT = 'sent'
    PAID = 'paid'
    PARTIALLY_PAID = 'partially_paid'
    OVERDUE = 'overdue'


class Organization(Base):
    __tablename__ = 'organizations'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Principal(Base):
    __tablename__ = 'principals'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    username: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(Text)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[PrincipalRole] = mapped_column(_enum(PrincipalRole, 'principal_role'), nullable=False)
    permissions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuthEvent(Base):
    __tablename__ = 'auth_events'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    attempted_username: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(Text)
    principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuditLog(Base):
    __tablename__ = 'audit_log'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('organizations.id'))
    actor_principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    action: Mapped[str] = mapped_column(Text, nullable=False)
    ip: Mapped[str | None] = mapped_column(String(64))
    meta: Mapped[dict] = mapped_column('metadata', JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class WebSession(Base):
    __tablename__ = 'web_sessions'
    __table_args__ = (
        UniqueConstraint('session_token', name='web_sessions_session_token_key'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_token: Mapped[str] = mapped_column(String(128), nullable=False)
    principal_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('principals.id'), nullable=False)
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Warehouse(Base):
    __tablename__ = 'warehouses'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str | None] = mapped_column(String(50))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Product(Base):
    __tablename__ = 'products'
    __table_args__ = (
        UniqueConstraint('organization_id', 'sku', name='products_organization_sku_uniq'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    category_name: Mapped[str | None] = mapped_column(Text)
    cost_price: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StockLevel(Base):
    __tablename__ = 'stock_levels'
    __table_args__ = (
        UniqueConstraint('product_id', 'warehouse_id', name='stock_levels_product_warehouse_uniq'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    warehouse_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False)
    quantity_on_hand: Mapped[Decimal] = mapped_column(Quantity, nullable=False, default=Decimal('0'), server_default='0')
    quantity_reserved: Mapped[Decimal] = mapped_column(Quantity, nullable=False, default=Decimal('0'), server_default='0')
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StockMovement(Base):
    __tablename__ = 'stock_movements'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    warehouse_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False)
    movement_type: Mapped[StockMovementType] = mapped_column(_enum(StockMovementType, 'stock_movement_type'), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    reference: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Supplier(Base):
    __tablename__ = 'suppliers'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(Text)
    payment_terms: Mapped[int | None] = mapped_column(Integer, default=30, server_default='30')
    currency_code: Mapped[str | None] = mapped_column(String(3))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ProductSupplier(Base):
    __tablename__ = 'product_suppliers'
    __table_args__ = (
        UniqueConstraint('product_id', 'supplier_id', name='product_suppliers_product_supplier_uniq'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    supplier_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False)
    supplier_sku: Mapped[str | None] = mapped_column(String(100))
    unit_price: Mapped[Decimal | None] = mapped_column(Money)
    minimum_order_quantity: Mapped[Decimal | None] = mapped_column(Quantity)
    lead_time_days: Mapped[int | None] = mapped_column(Integer)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ProcurementSetting(Base):
    __tablename__ = 'procurement_settings'

    organization_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey('organizations.id', ondelete='CASCADE'), primary_key=True
    )
    default_tax_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    critical_days_threshold: Mapped[int | None] = mapped_column(Integer)
    consumption_lookback_days: Mapped[int | None] = mapped_column(Integer)
    updated_by_principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ReorderRule(Base):
    __tablename__ = 'reorder_rules'
    __table_args__ = (
        CheckConstraint('reorder_point >= 0', name='reorder_rules_reorder_point_check'),
        CheckConstraint('reorder_quantity > 0', name='reorder_rules_reorder_quantity_check'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    warehouse_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('warehouses.id', ondelete='CASCADE'))
    reorder_point: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    reorder_quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    max_quantity: Mapped[Decimal | None] = mapped_column(Quantity)
    lead_time_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    priority: Mapped[ReorderPriority] = mapped_column(
        _enum(ReorderPriority, 'reorder_priority'),
        nullable=False,
        default=ReorderPriority.NORMAL,
        server_default='normal',
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


Index(
    'reorder_rules_scope_uniq',
    ReorderRule.organization_id,
    ReorderRule.product_id,
    func.coalesce(ReorderRule.warehouse_id, 0),
    unique=True,
)


class PurchaseOrderSuggestion(Base):
    __tablename__ = 'purchase_order_suggestions'
    __table_args__ = (
        CheckConstraint(
            "(status = 'ordered') = (po_number IS NOT NULL)",
            name='purchase_order_suggestions_po_number_check',
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    warehouse_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('warehouses.id', ondelete='SET NULL'))
    reorder_rule_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('reorder_rules.id', ondelete='SET NULL'))
    current_stock: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    suggested_quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    days_of_stock_remaining: Mapped[int | None] = mapped_column(Integer)
    priority: Mapped[ReorderPriority] = mapped_column(
        _enum(ReorderPriority, 'reorder_priority'),
        nullable=False,
        default=ReorderPriority.NORMAL,
    )
    status: Mapped[SuggestionStatus] = mapped_column(
        _enum(SuggestionStatus, 'suggestion_status'),
        nullable=False,
        default=SuggestionStatus.PENDING,
        server_default='pending',
    )
    po_number: Mapped[str | None] = mapped_column(String(20))
    purchase_order_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('purchase_orders.id', ondelete='SET NULL'))
    notes: Mapped[str | None] = mapped_column(Text)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by_principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# One open (pending or approved) suggestion per product/warehouse.
Index(
    'purchase_order_suggestions_open_uniq',
    PurchaseOrderSuggestion.organization_id,
    PurchaseOrderSuggestion.product_id,
    func.coalesce(PurchaseOrderSuggestion.warehouse_id, 0),
    unique=True,
    postgresql_where=text("status IN ('pending', 'approved')"),
    sqlite_where=text("status IN ('pending', 'approved')"),
)


class PurchaseOrder(Base):
    __tablename__ = 'purchase_orders'
    __table_args__ = (
        UniqueConstraint('organization_id', 'po_number', name='purchase_orders_organization_po_number_uniq'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    po_number: Mapped[str] = mapped_column(String(20), nullable=False)
    supplier_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('suppliers.id'), nullable=False)
    warehouse_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('warehouses.id'), nullable=False)
    po_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_delivery_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[PurchaseOrderStatus] = mapped_column(
        _enum(PurchaseOrderStatus, 'purchase_order_status'),
        nullable=False,
        default=PurchaseOrderStatus.DRAFT,
        server_default='draft',
    )
    currency_code: Mapped[str | None] = mapped_column(String(3))
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    tax_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    notes: Mapped[str | None] = mapped_column(Text)
    created_by_principal_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('principals.id'), nullable=False)
    received_date: Mapped[date | None] = mapped_column(Date)
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    email_sent_by_principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PurchaseOrderLine(Base):
    __tablename__ = 'purchase_order_lines'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    purchase_order_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id'), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    quantity_ordered: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    quantity_received: Mapped[Decimal] = mapped_column(Quantity, nullable=False, default=Decimal('0'), server_default='0')
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal('0'), server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class DocumentSequence(Base):
    __tablename__ = 'document_sequences'
    __table_args__ = (
        UniqueConstraint('organization_id', 'document_type', name='document_sequences_organization_type_uniq'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    document_type: Mapped[DocumentType] = mapped_column(_enum(DocumentType, 'document_type'), nullable=False)
    next_number: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1, server_default='1')
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class RequestForQuotation(Base):
    __tablename__ = 'request_for_quotations'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    rfq_number: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str | None] = mapped_column(Text)
    status: Mapped[RfqStatus] = mapped_column(
        _enum(RfqStatus, 'rfq_status'), nullable=False, default=RfqStatus.DRAFT, server_default='draft'
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SupplierQuotationSubmission(Base):
    __tablename__ = 'supplier_quotation_submissions'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    supplier_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('suppliers.id'), nullable=False)
    rfq_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('request_for_quotations.id', ondelete='SET NULL'))
    purchase_order_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('purchase_orders.id', ondelete='SET NULL'))
    submission_number: Mapped[str] = mapped_column(String(30), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    currency_code: Mapped[str | None] = mapped_column(String(3))
    status: Mapped[QuotationStatus] = mapped_column(
        _enum(QuotationStatus, 'quotation_status'),
        nullable=False,
        default=QuotationStatus.SUBMITTED,
        server_default='submitted',
    )
    submission_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    reviewed_by_principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    rejection_notes: Mapped[str | None] = mapped_column(Text)
    can_resubmit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SupplierInvoice(Base):
    __tablename__ = 'supplier_invoices'
    __table_args__ = (
        UniqueConstraint('organization_id', 'invoice_number', name='supplier_invoices_organization_number_uniq'),
        UniqueConstraint('quotation_id', name='supplier_invoices_quotation_uniq'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(20), nullable=False)
    supplier_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('suppliers.id'), nullable=False)
    quotation_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('supplier_quotation_submissions.id'))
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    tax_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus, 'payment_status'),
        nullable=False,
        default=PaymentStatus.PENDING,
        server_default='pending',
    )
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SupplierPortalNotification(Base):
    __tablename__ = 'supplier_portal_notifications'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    supplier_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_entity_type: Mapped[str | None] = mapped_column(String(50))
    related_entity_id: Mapped[int | None] = mapped_column(BigInteger)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Customer(Base):
    __tablename__ = 'customers'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str | None] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SalesOrder(Base):
    __tablename__ = 'sales_orders'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    customer_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('customers.id'), nullable=False)
    so_number: Mapped[str] = mapped_column(String(20), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[SalesOrderStatus] = mapped_column(
        _enum(SalesOrderStatus, 'sales_order_status'),
        nullable=False,
        default=SalesOrderStatus.DRAFT,
        server_default='draft',
    )
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SalesOrderLine(Base):
    __tablename__ = 'sales_order_lines'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    sales_order_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('sales_orders.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)


class SalesInvoice(Base):
    __tablename__ = 'sales_invoices'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    organization_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('organizations.id'), nullable=False)
    customer_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('customers.id'), nullable=False)
    sales_order_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('sales_orders.id', ondelete='SET NULL'))
    invoice_number: Mapped[str] = mapped_column(String(20), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[SalesInvoiceStatus] = mapped_column(
        _enum(SalesInvoiceStatus, 'sales_invoice_status'),
        nullable=False,
        default=SalesInvoiceStatus.DRAFT,
        server_default='draft',
    )
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    paid_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    balance_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0.00'), server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
