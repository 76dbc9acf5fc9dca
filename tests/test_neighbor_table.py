"""
Tests for NeighborTable - Layer A neighbor discovery and management.
"""
import pytest

from gccp.protocol.states import NodeRole
from tests.conftest import address_of


class TestNeighborTableCreation:
    """Tests for neighbor table creation and updates."""

    def test_update_neighbor_creates_entry(self, neighbor_table):
        """Adding a new neighbor should create an entry."""
        is_new = neighbor_table.update_neighbor(2, color=1, role=NodeRole.MEMBER,
                                                cluster_id=0, address=address_of(2))

        assert is_new
        assert 2 in neighbor_table.get_one_hop_set()

    def test_update_neighbor_overwrites_wholesale(self, context, neighbor_table):
        """A newer beacon replaces every field of the entry."""
        neighbor_table.update_neighbor(2, color=1, role=NodeRole.MEMBER,
                                       cluster_id=0, address=address_of(2))
        context.update_time(1.0)
        is_new = neighbor_table.update_neighbor(2, color=0, role=NodeRole.CLUSTER_HEAD,
                                                cluster_id=2, address=address_of(2))

        info = neighbor_table.get_neighbor(2)
        assert not is_new
        assert len(neighbor_table) == 1
        assert (info.color, info.role, info.cluster_id, info.last_heard) == \
            (0, NodeRole.CLUSTER_HEAD, 2, 1.0)

    def test_unknown_role_treated_as_undecided(self, neighbor_table):
        neighbor_table.update_neighbor(2, color=1, role=9, cluster_id=0, address=address_of(2))
        assert neighbor_table.get_neighbor(2).role == NodeRole.UNDECIDED

    def test_none_id_rejected(self, neighbor_table):
        with pytest.raises(ValueError):
            neighbor_table.update_neighbor(None, color=1, role=0, cluster_id=0, address=None)

    def test_non_integer_id_rejected(self, neighbor_table):
        with pytest.raises(TypeError):
            neighbor_table.update_neighbor("2", color=1, role=0, cluster_id=0, address=None)


class TestNeighborTablePruning:
    """Tests for stale neighbor pruning."""

    def test_prune_stale_removes_old_neighbors(self, context, neighbor_table):
        """Neighbors not heard within the timeout are pruned."""
        neighbor_table.update_neighbor(2, color=1, role=0, cluster_id=-1, address=address_of(2))

        context.update_time(context.config.neighbor_timeout + 1.0)
        neighbor_table.update_neighbor(3, color=2, role=0, cluster_id=-1, address=address_of(3))

        assert neighbor_table.prune_stale()

        neighbors = neighbor_table.get_one_hop_set()
        assert 2 not in neighbors
        assert 3 in neighbors

    def test_prune_keeps_entry_at_exact_timeout(self, context, neighbor_table):
        """Only strictly older entries are removed."""
        neighbor_table.update_neighbor(2, color=1, role=0, cluster_id=-1, address=address_of(2))
        context.update_time(context.config.neighbor_timeout)

        assert not neighbor_table.prune_stale()
        assert 2 in neighbor_table

    def test_staleness_only_evaluated_on_prune(self, context, neighbor_table):
        """A stale entry remains visible until prune_stale runs."""
        neighbor_table.update_neighbor(2, color=1, role=0, cluster_id=-1, address=address_of(2))
        context.update_time(100.0)

        assert neighbor_table.get_neighbor(2) is not None

    def test_explicit_now_and_timeout(self, neighbor_table):
        neighbor_table.update_neighbor(2, color=1, role=0, cluster_id=-1,
                                       address=address_of(2), now=10.0)

        assert not neighbor_table.prune_stale(now=11.0, timeout=2.0)
        assert neighbor_table.prune_stale(now=13.0, timeout=2.0)


class TestNeighborTableQueries:
    """Tests for neighbor table query methods."""

    @pytest.fixture
    def populated(self, neighbor_table):
        neighbor_table.update_neighbor(1, color=0, role=NodeRole.CLUSTER_HEAD,
                                       cluster_id=1, address=address_of(1))
        neighbor_table.update_neighbor(3, color=2, role=NodeRole.GATEWAY,
                                       cluster_id=1, address=address_of(3))
        neighbor_table.update_neighbor(7, color=-1, role=NodeRole.UNDECIDED,
                                       cluster_id=-1, address=address_of(7))
        return neighbor_table

    def test_find_by_address(self, populated):
        assert populated.find_by_address(address_of(3)).neighbor_id == 3
        assert populated.find_by_address(("10.9.9.9", 5000)) is None
        assert populated.find_by_address(None) is None

    def test_used_colors_ignores_uncolored(self, populated):
        assert populated.used_colors() == {0, 2}

    def test_neighbors_with_color(self, populated):
        assert [n.neighbor_id for n in populated.neighbors_with_color(0)] == [1]

    def test_neighbors_with_role(self, populated):
        found = populated.neighbors_with_role(NodeRole.CLUSTER_HEAD, NodeRole.GATEWAY)
        assert sorted(n.neighbor_id for n in found) == [1, 3]

    def test_snapshot_is_independent(self, populated):
        snapshot = populated.get_snapshot()
        populated.update_neighbor(9, color=4, role=0, cluster_id=-1, address=address_of(9))

        assert 9 not in snapshot
        assert populated.get_neighbor_count() == 4
