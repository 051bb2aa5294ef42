"""
360° performance evaluation workbook parser and analytics.
"""

from eval360.analytics import apply_filters, generate_analytics
from eval360.identity import resolve_identity
from eval360.parser import process_files, process_workbooks

__all__ = [
    'apply_filters',
    'generate_analytics',
    'process_files',
    'process_workbooks',
    'resolve_identity',
]
