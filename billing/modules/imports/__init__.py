"""
Spreadsheet import of historical invoices (.xlsx through openpyxl, or .csv).
"""
