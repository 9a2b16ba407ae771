"""
Invoices module

Sales invoices for service engagements:

- Tax computation on every amount change (GST/TDS/TCS, export of services)
- Payment lifecycle: Unpaid -> Partial -> Paid, plus Void
- Paid invoices keep a matching entry in the revenue ledger
- Per-year numbering (KVPL<year><seq>)
- PDF and email delivery through Celery

Tables:
- invoices, invoice_items, payments
- invoice_sequences: per-year counters
- invoice_status_changes: lifecycle audit trail
"""
