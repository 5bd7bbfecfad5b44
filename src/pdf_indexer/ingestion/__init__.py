"""
Ingestion — everything between a storage key and vector records.

fetch (object store) → parse (PyPDF) → normalise/split → embed → build records.
"""
