"""Textile ERP inventory core: products, stock ledger and quality inspections."""

__version__ = "1.0.0"
