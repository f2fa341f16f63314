"""
Output generation.

This package writes harvested records and run summaries to disk.
"""

from .writer import safe_stem, write_records, write_run_summary

__all__ = ["safe_stem", "write_records", "write_run_summary"]
