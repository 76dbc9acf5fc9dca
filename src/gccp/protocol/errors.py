"""
Error types for the GCCP protocol.

Routing failures are not exceptions: they are counted and traced as
DropReason values (see states.py). Only configuration problems are fatal.
"""


class ConfigurationError(ValueError):
    """Invalid node configuration, detected at startup."""


class UnknownMessageError(ValueError):
    """Packet or event of a kind this node does not understand."""
