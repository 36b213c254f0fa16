"""Bulk loader for MRF negotiated-rate files into a relational catalog."""

__version__ = "0.1.0"
