"""
Basic example of MetaQuery with SQLAlchemy and Strawberry GraphQL.

This example demonstrates:
- Registering tables in the metadata catalog
- Running a flat join query through the GraphQL schema
- Getting the same join back as nested documents
- Pinning a link's cardinality when the naming rule guesses wrong
"""

import asyncio
import json

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from metaquery.catalog import CatalogBase, TableMetadataRecord
from metaquery.config import MetaQueryConfig
from metaquery.core.relationships import Cardinality
from metaquery.schema import build_schema


class Base(DeclarativeBase):
    pass


class Client(Base):
    __tablename__ = 'CLIENTS'

    id = Column('ID', Integer, primary_key=True)
    name = Column('NAME', String(100), nullable=False)


class Order(Base):
    __tablename__ = 'ORDERS'

    id = Column('ID', Integer, primary_key=True)
    order_date = Column('ORDER_DATE', String(10))
    client_id = Column('ID_CLIENT', Integer, ForeignKey('CLIENTS.ID'))


class Item(Base):
    __tablename__ = 'ITEMS'

    id = Column('ID', Integer, primary_key=True)
    order_id = Column('ID_ORDER', Integer, ForeignKey('ORDERS.ID'))
    name = Column('NAME', String(100))


async def seed(session: AsyncSession):
    session.add_all([
        TableMetadataRecord(
            table_name='ORDERS',
            available_fields='ID,ORDER_DATE',
            primary_key='ID',
            table_links='CLIENTS:ID_CLIENT:ID;ITEMS:ID_ORDER:ID',
        ),
        TableMetadataRecord(table_name='CLIENTS', available_fields='ID,NAME', primary_key='ID'),
        TableMetadataRecord(table_name='ITEMS', available_fields='ID,ID_ORDER,NAME', primary_key='ID'),
        Client(id=1, name='Alice'),
    ])
    await session.flush()
    session.add(Order(id=10, order_date='2024-01-05', client_id=1))
    await session.flush()
    session.add_all([Item(id=100, order_id=10, name='Pen'), Item(id=101, order_id=10, name='Ink')])
    await session.commit()


QUERY = """
query($hierarchical: Boolean!) {
  dynamicQuery(table: "ORDERS", includeJoins: true, depth: 1, hierarchical: $hierarchical) {
    format total data
  }
}
"""


async def main():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(CatalogBase.metadata.create_all)
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    # ID_CLIENT starts with ID_, so the default rule would list clients as an array
    schema = build_schema(MetaQueryConfig(cardinality_overrides={'CLIENTS': Cardinality.MANY_TO_ONE}))

    async with session_factory() as session:
        await seed(session)
        for hierarchical in (False, True):
            res = await schema.execute(
                QUERY,
                variable_values={'hierarchical': hierarchical},
                context_value={'db_session': session},
            )
            if res.errors:
                raise res.errors[0]
            print(json.dumps(res.data['dynamicQuery'], indent=2))

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
