"""
Index gateways for logsync.

This module provides:
- IndexGateway: Abstract base class for the search index write side
- ElasticsearchIndexGateway: Async Elasticsearch implementation
- InMemoryIndexGateway: Dictionary-backed implementation for testing
"""

from logsync.index.elasticsearch import DEFAULT_INDEX_PREFIX, ElasticsearchIndexGateway
from logsync.index.in_memory import InMemoryIndexGateway
from logsync.index.interface import IndexGateway

__all__ = [
    "DEFAULT_INDEX_PREFIX",
    "IndexGateway",
    "ElasticsearchIndexGateway",
    "InMemoryIndexGateway",
]
