"""
Subscription Planning Dashboard - Store
Record store access with a deterministic default dataset as fallback
"""

from .bigquery_connector import BigQueryConnector
from .loader import DashboardLoader, FetchResult, fetch_with_fallback

__all__ = [
    'BigQueryConnector',
    'DashboardLoader',
    'FetchResult',
    'fetch_with_fallback'
]
