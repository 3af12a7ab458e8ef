from __future__ import annotations

import tempfile
import unittest
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from erp_portal.auth import Principal, RequestContext, Role, get_current_principal
from erp_portal.db import build_engine, get_db
from erp_portal.main import app
from erp_portal.models import (
    AuditLog,
    Base,
    Organization,
    Principal as PrincipalModel,
    PrincipalRole,
    Product,
    ProductSupplier,
    QuotationStatus,
    ReorderPriority,
    ReorderRule,
    StockLevel,
    Supplier,
    SupplierQuotationSubmission,
    Warehouse,
)
from erp_portal.services.notification_service import SEND_STATUS_SENT, EmailSender, get_email_sender


def list_audit_actions(db: Session, *, organization_id: int) -> list[str]:
    query = select(AuditLog.action).where(AuditLog.organization_id == organization_id).order_by(AuditLog.id)
    return list(db.execute(query).scalars())


class RecordingSender:
    configured = True

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.sent: list[dict] = []

    def send(self, *, to: str, subject: str, body: str) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append({'to': to, 'subject': subject, 'body': body})
        return SEND_STATUS_SENT


class ProcurementTestCase(unittest.TestCase):
    """Fresh SQLite file per test with one organization, admin, warehouse, product and supplier."""

    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.engine = build_engine(f'sqlite:///{Path(self._tmpdir.name) / "erp.db"}')
        Base.metadata.create_all(self.engine)
        self.SessionFactory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

        with self.session() as db:
            organization = Organization(name='Acme Traders', active=True)
            db.add(organization)
            db.flush()
            admin = PrincipalModel(
                organization_id=organization.id,
                username='admin',
                email='admin@acme.test',
                password_hash='not-a-real-hash',
                role=PrincipalRole.ADMIN,
                permissions={},
                active=True,
            )
            warehouse = Warehouse(organization_id=organization.id, name='Main Warehouse', code='WH-1', active=True)
            product = Product(
                organization_id=organization.id,
                name='Copper Wire',
                sku='CW-100',
                category_name='Electrical',
                cost_price=Decimal('15.00'),
                active=True,
            )
            supplier = Supplier(
                organization_id=organization.id,
                name='Wire Works',
                code='SUP-1',
                email='orders@wireworks.test',
                payment_terms=45,
                currency_code='INR',
                active=True,
            )
            db.add_all([admin, warehouse, product, supplier])
            db.commit()
            self.organization_id = organization.id
            self.admin_id = admin.id
            self.warehouse_id = warehouse.id
            self.product_id = product.id
            self.supplier_id = supplier.id

        self.ctx = RequestContext(organization_id=self.organization_id, principal_id=self.admin_id)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.engine.dispose()
        self._tmpdir.cleanup()

    @contextmanager
    def session(self):
        db: Session = self.SessionFactory()
        try:
            yield db
        finally:
            db.close()

    def add_stock(self, db: Session, *, quantity: str, reserved: str = '0', product_id=None, warehouse_id=None) -> None:
        db.add(
            StockLevel(
                product_id=product_id or self.product_id,
                warehouse_id=warehouse_id or self.warehouse_id,
                quantity_on_hand=Decimal(quantity),
                quantity_reserved=Decimal(reserved),
            )
        )

    def add_rule(
        self,
        db: Session,
        *,
        reorder_point: str = '10',
        reorder_quantity: str = '50',
        max_quantity: str | None = None,
        priority: ReorderPriority = ReorderPriority.NORMAL,
        product_id=None,
        warehouse_id=None,
    ) -> ReorderRule:
        rule = ReorderRule(
            organization_id=self.organization_id,
            product_id=product_id or self.product_id,
            warehouse_id=warehouse_id,
            reorder_point=Decimal(reorder_point),
            reorder_quantity=Decimal(reorder_quantity),
            max_quantity=Decimal(max_quantity) if max_quantity is not None else None,
            lead_time_days=0,
            priority=priority,
            active=True,
        )
        db.add(rule)
        db.flush()
        return rule

    def link_supplier(self, db: Session, *, unit_price: str | None = '20.00', is_primary: bool = True, supplier_id=None):
        db.add(
            ProductSupplier(
                product_id=self.product_id,
                supplier_id=supplier_id or self.supplier_id,
                unit_price=Decimal(unit_price) if unit_price is not None else None,
                is_primary=is_primary,
                active=True,
            )
        )

    def add_quotation(
        self,
        db: Session,
        *,
        total_amount: str = '5000.50',
        status: QuotationStatus = QuotationStatus.SUBMITTED,
        submission_number: str = 'SQ-2024-0001',
        rfq_id=None,
    ) -> SupplierQuotationSubmission:
        quotation = SupplierQuotationSubmission(
            supplier_id=self.supplier_id,
            rfq_id=rfq_id,
            submission_number=submission_number,
            total_amount=Decimal(total_amount),
            currency_code='INR',
            status=status,
            can_resubmit=True,
        )
        db.add(quotation)
        db.flush()
        return quotation

    def client_for(
        self,
        *,
        role: Role = Role.ADMIN,
        permissions: dict | None = None,
        sender=None,
        real_sessions: bool = False,
    ) -> TestClient:
        def _override_get_db():
            db = self.SessionFactory()
            try:
                yield db
            finally:
                db.close()

        principal = Principal(
            id=self.admin_id,
            username='admin',
            role=role,
            organization_id=self.organization_id,
            active=True,
            email='admin@acme.test',
            permissions=permissions or {},
        )
        app.dependency_overrides[get_db] = _override_get_db
        if not real_sessions:
            app.dependency_overrides[get_current_principal] = lambda: principal
        app.dependency_overrides[get_email_sender] = lambda: sender or EmailSender(host=None)
        return TestClient(app)
