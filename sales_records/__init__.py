# RetailStack Sales Records
# Sales history queries and receipt printing

__version__ = '0.1.0'

from .backend_client import BackendClient, StubBackendClient
from .date_ranges import DateRangeResolver
from .detail_fetcher import DetailFetcher
from .errors import PrintSurfaceUnavailable, QueryFailedError, SalesRecordsError, TransientFetchError
from .events import EventBus, SaleRecorded, SaleVoided
from .list_pipeline import ListPipeline
from .query_orchestrator import QueryOrchestrator
from .receipt_composer import ReceiptDocument, compose
from .receipt_output import PrintOutcome, ReceiptOutput
from .receipt_renderer import ReceiptRenderer
from .sales_view import SalesRecordsView

__all__ = [
    'BackendClient',
    'StubBackendClient',
    'DateRangeResolver',
    'DetailFetcher',
    'PrintSurfaceUnavailable',
    'QueryFailedError',
    'SalesRecordsError',
    'TransientFetchError',
    'EventBus',
    'SaleRecorded',
    'SaleVoided',
    'ListPipeline',
    'QueryOrchestrator',
    'ReceiptDocument',
    'compose',
    'PrintOutcome',
    'ReceiptOutput',
    'ReceiptRenderer',
    'SalesRecordsView',
]
