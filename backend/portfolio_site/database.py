"""
Portfolio Site Backend — Declarative Base
==========================================

What:  The SQLAlchemy DeclarativeBase shared by the schema models.
How:   The running service never opens a direct Postgres connection; it
       talks to Supabase over PostgREST. The models exist so Alembic can
       version the subscriber schema, and alembic/env.py builds its own
       async engine from settings.database_url.
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Deterministic constraint names so migrations can drop what they create
NAMING_CONVENTION = {
    "ix": "idx_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
