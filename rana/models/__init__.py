"""
Database Models
===============
SQLAlchemy ORM models for the relational cost ledger.
"""

from rana.models.base import Base
from rana.models.cost import CostRecordRow

__all__ = ["Base", "CostRecordRow"]
