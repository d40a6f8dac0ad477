"""
External collaborator adapters.
"""
from .reference_data import (
    ReferenceDataProvider,
    RecordSink,
    InMemoryReferenceData,
    InMemoryRecordSink,
)
from .http_client import ReferenceApiClient

__all__ = [
    "ReferenceDataProvider",
    "RecordSink",
    "InMemoryReferenceData",
    "InMemoryRecordSink",
    "ReferenceApiClient",
]
