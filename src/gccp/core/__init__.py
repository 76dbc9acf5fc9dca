"""
Core module containing the GCCP node application.
"""

from .node import ClusteringNode

__all__ = ['ClusteringNode']
