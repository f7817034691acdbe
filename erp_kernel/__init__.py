"""
ERP Kernel

Domain model for a small accounting/ERP system:
- Chart of accounts and fiscal periods
- Balanced ledger transactions with period-controlled posting
- Business entities and items
- Tax catalog with group-targeted, priority-ordered tax rules
- Two persistence backings: SQLAlchemy ORM and an in-memory object store
"""

__version__ = "0.1.0"
