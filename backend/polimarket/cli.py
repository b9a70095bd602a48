# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/polimarket/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask system seed
#   Idempotent load of the reference data: HR staff, sellers, customers, products.
#
# Inventory inspection:
# - python -m flask inventory alerts
#   Print current out-of-stock / low-stock / overstock alerts.
#
# Seller inspection:
# - python -m flask sellers list [--pending]
#   List authorized sellers, or those awaiting HR approval.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import HREmployee, Seller, Customer, Product
from .services import authorization_service, customer_service, inventory_service, products_service
from .services.pricing_service import format_cents


SEED_ACTOR = "seed"

HR_EMPLOYEES = [
    ("HR001", "Ana García Rodríguez", "Gerente de Recursos Humanos", "ana.garcia@polimarket.com"),
    ("HR002", "Carlos López Martínez", "Analista de Recursos Humanos", "carlos.lopez@polimarket.com"),
    ("HR003", "María Elena Vargas", "Coordinadora de Selección", "maria.vargas@polimarket.com"),
    ("HR004", "Jorge Andrés Ruiz", "Especialista en Capacitación", "jorge.ruiz@polimarket.com"),
    ("HR005", "Laura Patricia Sánchez", "Asistente de RH", "laura.sanchez@polimarket.com"),
]

# (code, name, territory, commission bps, authorizing HR id or None for pending)
SELLERS = [
    ("V001", "Juan Carlos Pérez", "Bogotá Norte", 550, "HR001"),
    ("V002", "Sandra Milena Torres", "Bogotá Sur", 600, "HR001"),
    ("V003", "Miguel Ángel Ramírez", "Medellín Centro", 580, "HR002"),
    ("V004", "Diana Carolina Herrera", "Cali Valle", 620, "HR002"),
    ("V005", "Andrés Felipe Morales", "Barranquilla Atlántico", 590, "HR003"),
    ("V006", "Claudia Patricia Jiménez", "Cartagena Bolívar", 570, None),
    ("V007", "Roberto Carlos Mendoza", "Bucaramanga Santander", 610, None),
    ("V008", "Paola Andrea Castillo", "Pereira Risaralda", 560, None),
    ("DEMO", "Vendedor Demo", "Nacional", 500, "HR001"),
]

CUSTOMERS = [
    ("C001", "Supermercados La Economía S.A.S", "compras@laeconomia.com", "+57 1 234 5678",
     "Calle 45 #23-67, Bogotá", "CORPORATE"),
    ("C002", "Distribuidora El Mayorista Ltda", "pedidos@elmayorista.com", "+57 4 345 6789",
     "Carrera 15 #78-90, Medellín", "WHOLESALE"),
    ("C003", "Tienda Don Pepe", "donpepe@gmail.com", "+57 2 456 7890",
     "Calle 12 #34-56, Cali", "RETAIL"),
    ("C004", "Almacenes Éxito Regional", "compras.regional@exito.com", "+57 5 567 8901",
     "Avenida 80 #45-23, Barranquilla", "CORPORATE"),
    ("C005", "Mercado Central de Abastos", "administracion@mercadocentral.com", "+57 7 678 9012",
     "Plaza de Mercado, Bucaramanga", "WHOLESALE"),
]

# (id, name, category, price cents, opening stock, min, max)
PRODUCTS = [
    ("P001", "Arroz Diana Premium 500g", "Alimentos Básicos", 350000, 150, 20, 500),
    ("P002", "Aceite Girasol 1L", "Alimentos Básicos", 890000, 80, 15, 200),
    ("P003", "Leche Entera Alpina 1L", "Lácteos", 420000, 120, 25, 300),
    ("P004", "Pan Tajado Bimbo 450g", "Panadería", 560000, 60, 10, 150),
    ("P005", "Coca Cola 2L", "Bebidas", 680000, 200, 30, 400),
    ("P006", "Detergente Ariel 1kg", "Limpieza", 1250000, 90, 15, 200),
    ("P007", "Jabón Rey 300g", "Aseo Personal", 280000, 180, 25, 350),
    ("P008", "Papel Higiénico Scott 4 rollos", "Aseo Personal", 890000, 75, 12, 180),
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Load the reference data set.

    Safe to run repeatedly: rows that already exist are skipped. Products are
    created empty and receive their opening stock as an ENTRY movement, so the
    movement log reconciles with stock from the first row.
    """
    click.echo("START Seeding PoliMarket reference data...")

    created = 0
    for emp_id, name, position, email in HR_EMPLOYEES:
        if db.session.get(HREmployee, emp_id) is not None:
            continue
        db.session.add(HREmployee(
            id=emp_id,
            name=name,
            position=position,
            department="Recursos Humanos",
            email=email,
            is_active=True,
        ))
        created += 1
    db.session.commit()
    click.echo(f"PASS HR employees: {created} created")

    created = 0
    for code, name, territory, commission_bps, hr_id in SELLERS:
        if db.session.get(Seller, code) is not None:
            continue
        if hr_id:
            authorization_service.authorize_seller(
                code=code,
                hr_employee_id=hr_id,
                name=name,
                territory=territory,
                commission_rate_bps=commission_bps,
            )
        else:
            authorization_service.register_pending_seller(
                code=code,
                name=name,
                territory=territory,
                commission_rate_bps=commission_bps,
            )
        created += 1
    click.echo(f"PASS Sellers: {created} created")

    created = 0
    for cust_id, name, email, phone, address, customer_type in CUSTOMERS:
        if db.session.get(Customer, cust_id) is not None:
            continue
        customer_service.create_customer(
            customer_id=cust_id,
            name=name,
            email=email,
            phone=phone,
            address=address,
            customer_type=customer_type,
        )
        created += 1
    click.echo(f"PASS Customers: {created} created")

    created = 0
    for prod_id, name, category, price_cents, opening, min_stock, max_stock in PRODUCTS:
        if db.session.get(Product, prod_id) is not None:
            continue
        products_service.create_product(
            product_id=prod_id,
            name=name,
            actor=SEED_ACTOR,
            category=category,
            price_cents=price_cents,
            min_stock=min_stock,
            max_stock=max_stock,
            initial_stock=opening,
        )
        created += 1
    click.echo(f"PASS Products: {created} created")

    click.echo("DONE Seed complete")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('alerts')
@with_appcontext
def inventory_alerts():
    """Print current stock alerts."""
    alerts = inventory_service.generate_alerts()
    if not alerts:
        click.echo("No stock alerts")
        return
    for alert in alerts:
        click.echo(f"{alert.kind:<13} {alert.product_id:<8} {alert.message}")


@click.group('sellers')
def sellers_group():
    """Seller inspection commands."""


@sellers_group.command('list')
@click.option('--pending', is_flag=True, help='List sellers awaiting HR approval')
@with_appcontext
def list_sellers(pending):
    """List authorized (default) or pending sellers."""
    if pending:
        sellers = authorization_service.list_pending_sellers()
    else:
        sellers = authorization_service.list_authorized_sellers()

    if not sellers:
        click.echo("No sellers found")
        return

    for seller in sellers:
        commission = format_cents(seller.commission_rate_bps)
        click.echo(
            f"{seller.code:<6} {seller.name:<32} {seller.territory or '-':<24} "
            f"commission={commission}% authorized={seller.is_authorized}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sellers_group)
