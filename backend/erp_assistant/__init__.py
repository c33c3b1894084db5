"""ERP Assistant: natural-language questions over NetSuite data."""
