"""Classification providers."""

from screenlabel.providers.base import ClassificationProvider, OutcomeKind, ProviderOutcome
from screenlabel.providers.cloud_text import CloudTextProvider
from screenlabel.providers.cloud_vision import CloudVisionProvider
from screenlabel.providers.local_baseline import LocalBaselineProvider
from screenlabel.providers.local_http import LocalHttpProvider, test_local_connection
from screenlabel.providers.local_retrieval import LocalRetrievalProvider

__all__ = [
    "ClassificationProvider",
    "CloudTextProvider",
    "CloudVisionProvider",
    "LocalBaselineProvider",
    "LocalHttpProvider",
    "LocalRetrievalProvider",
    "OutcomeKind",
    "ProviderOutcome",
    "test_local_connection",
]
