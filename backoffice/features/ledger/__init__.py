"""Transaction ledger read model.

Transaction CRUD and approval workflows live elsewhere; this package only
declares the table the analytics queries read from.
"""

from backoffice.features.ledger.models import Transaction, TransactionStatus, TransactionType

__all__ = ["Transaction", "TransactionStatus", "TransactionType"]
