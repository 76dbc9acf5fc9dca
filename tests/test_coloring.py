"""
Tests for ColoringEngine - greedy repair, promotion and compaction.
"""
import pytest

from gccp.protocol.layer_b.coloring import smallest_free_color
from tests.conftest import add_neighbor


class TestSmallestFreeColor:

    def test_empty(self):
        assert smallest_free_color(set()) == 0

    def test_gap(self):
        assert smallest_free_color({0, 1, 3}) == 2

    def test_start(self):
        assert smallest_free_color({0, 1}, start=1) == 2


class TestGreedyRepair:
    """Uncolored nodes and conflicts pick the smallest free color."""

    def test_isolated_node_takes_zero(self, context, coloring):
        assert coloring.recompute_color()
        assert context.color == 0

    def test_uncolored_takes_smallest_unused(self, context, coloring):
        add_neighbor(context, 1, color=0)
        add_neighbor(context, 2, color=1)

        coloring.recompute_color()

        assert context.color == 2

    def test_conflict_with_lower_id_yields(self, context, coloring):
        """The higher id gives up a shared color."""
        context.color = 0
        add_neighbor(context, 1, color=0)

        assert coloring.has_conflict()
        coloring.recompute_color()

        assert context.color == 1

    def test_conflict_with_higher_id_keeps_color(self, context, coloring):
        """The lower id keeps a shared color."""
        context.color = 0
        add_neighbor(context, 9, color=0)

        assert not coloring.has_conflict()
        assert not coloring.recompute_color()
        assert context.color == 0


class TestPromotionAndCompaction:

    def test_promotes_to_zero_when_free(self, context, coloring):
        """No neighbor uses 0: take it."""
        context.color = 3
        add_neighbor(context, 1, color=1)

        coloring.recompute_color()

        assert context.color == 0

    def test_no_promotion_without_neighbors(self, context, coloring):
        """An empty table does not trigger promotion of a colored node."""
        context.color = 1

        assert not coloring.recompute_color()
        assert context.color == 1

    def test_lone_node_still_compacts(self, context, coloring):
        """Promotion is skipped on an empty table but compaction is not."""
        context.color = 2

        assert coloring.recompute_color()
        assert context.color == 1

    def test_compacts_downward(self, context, coloring):
        context.color = 4
        add_neighbor(context, 1, color=0)
        add_neighbor(context, 2, color=2)

        coloring.recompute_color()

        assert context.color == 1

    def test_never_moves_up(self, context, coloring):
        context.color = 1
        add_neighbor(context, 7, color=0)
        add_neighbor(context, 8, color=2)

        assert not coloring.recompute_color()
        assert context.color == 1

    def test_change_counted(self, context, coloring):
        coloring.recompute_color()
        assert context.metrics.color_changes == 1

    def test_requires_table(self, context):
        from gccp.protocol.layer_b.coloring import ColoringEngine
        with pytest.raises(RuntimeError):
            ColoringEngine(context).recompute_color()
