"""
Service layer for zgraph.

Services orchestrate domain objects and the resolver across the
filesystem. They take configuration and collaborators via dependency
injection for testability.
"""

from .graph_service import GraphService, DiscoveryResult, WorkspaceDiscovery

__all__ = [
    'GraphService',
    'DiscoveryResult',
    'WorkspaceDiscovery',
]
