"""
Header matching for invoice spreadsheets.

Sheets come from several exports with slightly different headings, so every
logical column has a list of accepted names. Headings are compared after
normalisation, first exactly and then by containment.
"""
import re
from typing import Any, Dict, Iterable, Optional

COLUMN_ALIASES = {
    "date": ["date", "day", "invoice date"],
    "month": ["month"],
    "year": ["year"],
    "client": ["client", "client name", "customer", "customer name"],
    "country": ["country"],
    "service": ["service", "service type"],
    "revenue_amount": ["revenue_amount", "revenue amount", "revenue"],
    "engagement": ["engagement", "engagement type"],
    "invoice_amount": ["invoice amount", "invoice_amount", "invoiceamount", "invoice total"],
    "gst": ["gst", "gst amount"],
    "tds": ["tds", "tds amount"],
    "remittance": ["remittance fee", "remittance", "remittance charges", "remittancecharge"],
    "received": ["recieved", "received", "received amount", "receivedamount"],
    "invoice_url": ["invoice url", "invoiceurl", "url"],
    "invoice_number": ["invoice #", "invoice#", "invoice number", "invoicenumber"],
}

# Headings never read for a column even when they contain one of its aliases
COLUMN_EXCLUDES = {
    "date": ["due"],
}


def normalize_header(value: Any) -> str:
    text = str(value or "").lower().strip()
    text = text.replace("_", " ")
    return re.sub(r"\s+", " ", text)


def match_column(
    headers: Iterable[str],
    aliases: Iterable[str],
    excludes: Iterable[str] = ()
) -> Optional[str]:
    """
    Header in ``headers`` that best matches any of ``aliases``.

    An exact match on any alias wins over a heading that merely contains one.
    Headings containing any of ``excludes`` are skipped.
    """
    blocked = [normalize_header(word) for word in excludes]
    normalized = []
    for header in headers:
        if header is None:
            continue
        key = normalize_header(header)
        if not any(word in key for word in blocked):
            normalized.append((header, key))
    terms = [normalize_header(alias) for alias in aliases]

    for header, key in normalized:
        if key in terms:
            return header
    for header, key in normalized:
        if any(term and term in key for term in terms):
            return header
    return None


def resolve_columns(headers: Iterable[str]) -> Dict[str, Optional[str]]:
    """Map each logical column to the sheet heading it is read from."""
    headers = list(headers)
    return {
        name: match_column(headers, aliases, COLUMN_EXCLUDES.get(name, ()))
        for name, aliases in COLUMN_ALIASES.items()
    }
