"""
Invoicing and revenue tracking service.
"""
