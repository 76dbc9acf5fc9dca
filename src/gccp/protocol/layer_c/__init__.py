"""
Layer C: Hierarchical Data Forwarding.
"""

from .route_cache import BackboneRouteCache, SeenSet
from .handler import ForwardingHandler, DeferredSend

__all__ = ['BackboneRouteCache', 'SeenSet', 'ForwardingHandler', 'DeferredSend']
