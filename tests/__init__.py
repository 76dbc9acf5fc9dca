"""
GCCP Protocol Test Suite

Tests are organized by protocol layer:
- test_neighbor_table.py / test_discovery_handler.py: Layer A neighbor discovery
- test_coloring.py / test_role_manager.py: Layer B coloring and roles
- test_route_cache.py / test_forwarding_handler.py: Layer C data forwarding
- test_node.py / test_simulation.py: node application and end-to-end scenarios
"""
