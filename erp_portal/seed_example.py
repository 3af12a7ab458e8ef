from decimal import Decimal

from sqlalchemy import select

from erp_portal.db import SessionLocal, engine
from erp_portal.models import (
    Base,
    Organization,
    Principal,
    PrincipalRole,
    Product,
    ProductSupplier,
    ReorderPriority,
    ReorderRule,
    StockLevel,
    Supplier,
    Warehouse,
)
from erp_portal.security.passwords import hash_password


def seed() -> None:
    Base.metadata.create_all(engine)
    with SessionLocal() as db:
        organization = db.execute(select(Organization).where(Organization.name == 'Demo Trading Co')).scalar_one_or_none()
        if not organization:
            organization = Organization(name='Demo Trading Co', active=True)
            db.add(organization)
            db.flush()

        warehouse = db.execute(
            select(Warehouse).where(Warehouse.organization_id == organization.id, Warehouse.code == 'MAIN')
        ).scalar_one_or_none()
        if not warehouse:
            warehouse = Warehouse(organization_id=organization.id, name='Main Warehouse', code='MAIN', active=True)
            db.add(warehouse)
            db.flush()

        supplier = db.execute(
            select(Supplier).where(Supplier.organization_id == organization.id, Supplier.code == 'SUP-001')
        ).scalar_one_or_none()
        if not supplier:
            supplier = Supplier(
                organization_id=organization.id,
                name='Demo Supplier',
                code='SUP-001',
                email='supplier@example.com',
                payment_terms=30,
                currency_code='INR',
                active=True,
            )
            db.add(supplier)
            db.flush()

        demo_products = [
            ('Copper Wire 2.5mm', 'CW-25', 'Electrical', Decimal('18.00'), Decimal('20.00'), Decimal('5')),
            ('PVC Conduit 20mm', 'PVC-20', 'Plumbing', Decimal('6.50'), Decimal('7.25'), Decimal('40')),
        ]
        for name, sku, category, cost, supplier_price, on_hand in demo_products:
            product = db.execute(
                select(Product).where(Product.organization_id == organization.id, Product.sku == sku)
            ).scalar_one_or_none()
            if product:
                continue
            product = Product(
                organization_id=organization.id,
                name=name,
                sku=sku,
                category_name=category,
                cost_price=cost,
                active=True,
            )
            db.add(product)
            db.flush()
            db.add(StockLevel(product_id=product.id, warehouse_id=warehouse.id, quantity_on_hand=on_hand))
            db.add(
                ProductSupplier(
                    product_id=product.id,
                    supplier_id=supplier.id,
                    unit_price=supplier_price,
                    is_primary=True,
                    active=True,
                )
            )
            db.add(
                ReorderRule(
                    organization_id=organization.id,
                    product_id=product.id,
                    warehouse_id=warehouse.id,
                    reorder_point=Decimal('10'),
                    reorder_quantity=Decimal('50'),
                    priority=ReorderPriority.NORMAL,
                    active=True,
                )
            )

        for username, password, role in (
            ('admin', 'adminpass', PrincipalRole.ADMIN),
            ('buyer', 'buyerpass', PrincipalRole.USER),
            ('auditor', 'auditorpass', PrincipalRole.VIEWER),
        ):
            principal = db.execute(select(Principal).where(Principal.username == username)).scalar_one_or_none()
            if not principal:
                db.add(
                    Principal(
                        organization_id=organization.id,
                        username=username,
                        email=f'{username}@example.com',
                        password_hash=hash_password(password),
                        role=role,
                        permissions={},
                        active=True,
                    )
                )

        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
