"""
Revenue ledger

Entries are either typed in and later converted to invoices, or generated
when an invoice is paid. All amounts are in the home currency.
"""
