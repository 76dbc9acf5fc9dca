"""
GCCP: Graph-Coloring Clustering Protocol.

Self-stabilizing distributed clustering for ad-hoc networks. Nodes color
themselves greedily from periodic beacons; color 0 nodes become cluster
heads, the rest attach to a directly heard head as members or gateways,
and data is routed over the resulting cluster-head/gateway backbone.
"""

__version__ = "0.1.0"
