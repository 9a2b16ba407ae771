"""
Customer master records.
"""

from .models import Customer
from .service import CustomerService

__all__ = ["Customer", "CustomerService"]
