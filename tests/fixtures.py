"""Database fixtures for MetaQuery tests (shared)."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from metaquery.catalog import TableMetadataRecord
from .models import Category, Client, Item, Order, Product


CATALOG_ROWS = [
    dict(
        table_name='ORDERS',
        available_fields='ID, ORDER_DATE, STATUS',
        primary_key='ID',
        table_links='CLIENTS:ID_CLIENT:ID;ITEMS:ID_ORDER:ID',
        table_description='Customer orders',
    ),
    dict(
        table_name='CLIENTS',
        available_fields='ID,NAME,EMAIL',
        primary_key='ID',
        table_links='ORDERS:ID_CLIENT:ID',
    ),
    dict(
        table_name='ITEMS',
        available_fields='ID,ID_ORDER,ID_PRODUCT,NAME,QUANTITY',
        primary_key='ID',
        table_links='PRODUCTS:ID_PRODUCT:ID',
    ),
    dict(table_name='PRODUCTS', available_fields='ID,NAME', primary_key='ID'),
    dict(table_name='CATEGORIES', available_fields='ID,NAME,MISSING_COL', primary_key='ID'),
    # Registered but never created in the database
    dict(table_name='GHOST', available_fields='ID', primary_key='ID'),
    dict(table_name='ARCHIVE', available_fields='ID', primary_key='ID', active=False),
]


async def create_sample_catalog(session: AsyncSession):
    """Create and commit the catalog entries used across tests."""
    records = [TableMetadataRecord(**row) for row in CATALOG_ROWS]
    session.add_all(records)
    await session.flush()
    await session.commit()
    return records


@pytest.fixture(scope="function")
async def sample_catalog(db_session: AsyncSession):
    return await create_sample_catalog(db_session)


async def create_sample_orders(session: AsyncSession):
    """Two clients, three orders (one without items), three items, two products."""
    clients = [
        Client(id=1, name='Alice', email='alice@example.com'),
        Client(id=2, name='Bob', email=None),
    ]
    products = [Product(id=1000, name='Pen'), Product(id=1001, name='Notebook')]
    session.add_all(clients + products)
    await session.flush()
    orders = [
        Order(id=10, order_date='2024-01-05', status='PAID', client_id=1),
        Order(id=11, order_date='2024-01-06', status='OPEN', client_id=2),
        Order(id=12, order_date='2024-01-07', status=None, client_id=1),
    ]
    session.add_all(orders)
    await session.flush()
    items = [
        Item(id=100, order_id=10, product_id=1000, name='Pen', quantity=2),
        Item(id=101, order_id=10, product_id=1001, name='Notebook', quantity=1),
        Item(id=102, order_id=11, product_id=1000, name='Pen', quantity=5),
    ]
    session.add_all(items + [Category(id=1, name='Stationery')])
    await session.flush()
    await session.commit()
    return {'clients': clients, 'products': products, 'orders': orders, 'items': items}


@pytest.fixture(scope="function")
async def sample_orders(db_session: AsyncSession):
    return await create_sample_orders(db_session)


@pytest.fixture(scope="function")
async def populated_db(sample_catalog, sample_orders):
    return {'catalog': sample_catalog, **sample_orders}
