#!/usr/bin/env python3
"""
GCCP Simulation Runner

Runs the graph-coloring clustering protocol over a synthetic topology on
the in-process discrete-event medium and logs a summary.

Usage:
    # 5x5 grid for two simulated minutes
    gccp-sim --topology grid --size 5 --duration 120

    # Random unit-disk graph with lossy links and data traffic
    gccp-sim --topology random --size 30 --radius 0.3 --loss 0.05 --data-interval 2

    # Fail a node halfway through
    gccp-sim --topology line --size 6 --fail 2 --fail-at 30

    # Measure only after clusters have formed
    gccp-sim --warmup 20 --data-interval 2

    # Verbose protocol trace
    gccp-sim -v
"""

import argparse
import logging
import sys
from typing import List, Optional

from gccp.protocol.config import NodeConfig
from gccp.protocol.errors import ConfigurationError
from . import topology
from .network import SimulatedNetwork

logger = logging.getLogger('gccp_sim')

PROTOCOL_LOGGERS = ['gccp.layer_a', 'gccp.coloring', 'gccp.roles', 'gccp.forwarding', 'gccp.node']


def build_network(args) -> SimulatedNetwork:
    edges = topology.build(args.topology, args.size, radius=args.radius, seed=args.seed)
    num_nodes = args.size * args.size if args.topology == 'grid' else args.size

    config = NodeConfig(
        hello_interval=args.hello_interval,
        maintenance_interval=args.maintenance_interval,
        data_interval=args.data_interval,
        initial_ttl=args.ttl,
        num_hosts=num_nodes,
    ).validate()

    return SimulatedNetwork(
        edges,
        num_nodes=num_nodes,
        config=config,
        seed=args.seed,
        propagation_delay=args.delay,
        loss_probability=args.loss,
    )


def print_statistics(network: SimulatedNetwork):
    """Log the end-of-run summary."""
    summary = network.aggregate_metrics()

    logger.info("=" * 60)
    logger.info("Simulation Statistics")
    logger.info("=" * 60)
    logger.info(f"Duration: {summary['time']:.1f}s")
    logger.info(f"Nodes: {summary['nodes']} ({summary['failed']} failed)")
    roles = ", ".join(f"{name}={count}" for name, count in summary['roles'].items())
    logger.info(f"Final roles: {roles}")
    logger.info(f"Color changes: {summary['color_changes']}, role changes: {summary['role_changes']}")

    conflicts = network.coloring_conflicts()
    violations = network.role_violations()
    logger.info(f"Coloring conflicts: {len(conflicts)}")
    for violation in violations:
        logger.warning(f"Role violation: {violation}")

    if summary['data_sent']:
        logger.info(
            f"Data: sent={summary['data_sent']}, delivered={summary['data_received']} "
            f"({summary['delivery_ratio']:.1%}), avg delay={summary['avg_delay'] * 1000:.2f}ms"
        )
        logger.info(f"Forwarded: {summary['forwarded']}, dropped: {summary['dropped']}")
    logger.info("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Run a GCCP clustering simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--topology',
        choices=['line', 'ring', 'grid', 'random'],
        default='grid',
        help='Topology to build (default: grid)'
    )
    parser.add_argument(
        '--size',
        type=int,
        default=4,
        help='Number of nodes (side length for grid) (default: 4)'
    )
    parser.add_argument(
        '--radius',
        type=float,
        default=0.3,
        help='Link radius for the random topology in a unit square (default: 0.3)'
    )
    parser.add_argument(
        '--duration',
        type=float,
        default=120.0,
        help='Simulated duration in seconds (default: 120)'
    )
    parser.add_argument(
        '--warmup',
        type=float,
        default=0.0,
        help='Seconds to run before counters are reset (default: 0)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=1,
        help='Random seed (default: 1)'
    )
    parser.add_argument(
        '--hello-interval',
        type=float,
        default=NodeConfig.hello_interval,
        help=f'Beacon period in seconds (default: {NodeConfig.hello_interval})'
    )
    parser.add_argument(
        '--maintenance-interval',
        type=float,
        default=NodeConfig.maintenance_interval,
        help=f'Coloring/role period in seconds (default: {NodeConfig.maintenance_interval})'
    )
    parser.add_argument(
        '--data-interval',
        type=float,
        default=0.0,
        help='Data generation period in seconds, 0 disables (default: 0)'
    )
    parser.add_argument(
        '--ttl',
        type=int,
        default=NodeConfig.initial_ttl,
        help=f'Initial data TTL (default: {NodeConfig.initial_ttl})'
    )
    parser.add_argument(
        '--delay',
        type=float,
        default=0.001,
        help='Propagation delay in seconds (default: 0.001)'
    )
    parser.add_argument(
        '--loss',
        type=float,
        default=0.0,
        help='Per-delivery loss probability (default: 0)'
    )
    parser.add_argument(
        '--fail',
        type=int,
        action='append',
        default=[],
        help='Node id to fail (repeatable)'
    )
    parser.add_argument(
        '--fail-at',
        type=float,
        default=None,
        help='Time at which --fail nodes fail (default: half the duration)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        for logger_name in PROTOCOL_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.DEBUG)

    try:
        network = build_network(args)
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    unknown = [nid for nid in args.fail if nid not in network.nodes]
    if unknown:
        logger.error(f"Cannot fail unknown node(s): {unknown}")
        return 1

    logger.info(f"Starting {args.topology} simulation with {len(network.nodes)} nodes")
    try:
        if args.warmup > 0:
            network.run(args.warmup)
            network.reset_metrics()
        if args.fail:
            fail_at = args.fail_at if args.fail_at is not None else args.duration / 2
            fail_at = min(max(fail_at, 0.0), args.duration)
            network.run(fail_at)
            for node_id in args.fail:
                network.fail_node(node_id)
            network.run(args.duration - fail_at)
        else:
            network.run(args.duration)
    except KeyboardInterrupt:
        logger.info("Simulation interrupted by user")

    print_statistics(network)
    logger.info("Simulation completed successfully")
    return 0


if __name__ == '__main__':
    sys.exit(main())
