"""HTTP clients for the external order service."""

from .http import ServiceClient, build_http_client, path_segment
from .table_service import TableServiceClient
from .order_service import OrderServiceClient
from .analytics_service import AnalyticsServiceClient

__all__ = [
    "ServiceClient",
    "build_http_client",
    "path_segment",
    "TableServiceClient",
    "OrderServiceClient",
    "AnalyticsServiceClient",
]
