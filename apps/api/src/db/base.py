"""
Declarative base shared by all Perch models.
"""
from sqlalchemy import DDL, event
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Exclusion constraints on reservations compare UUIDs with "=" inside a GiST index
event.listen(
    Base.metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
