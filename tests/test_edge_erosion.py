"""Tests for plate edge erosion."""

import pytest

from py_plates.core.alea_prng import AleaPRNG
from py_plates.core.edge_erosion import (
    STRATEGY_CASCADE,
    STRATEGY_DIRECT,
    STRATEGY_FAILED,
    STRATEGY_NONE,
    EdgeErosion,
)
from py_plates.core.errors import StorageError
from py_plates.core.models import Platelet, platelet_id
from py_plates.core.neighbor_graph import NeighborGraph
from py_plates.db.collections import MemoryCollection
from py_plates.db.store import SimulationStore


class RejectingDeletes(MemoryCollection):
    def __init__(self):
        super().__init__("platelets", Platelet, index_fields=("plate_id", "planet_id"))

    async def delete_many(self, record_ids):
        raise StorageError("read-only")


def erosion_for(store, grid, config, seed="erosion"):
    graph = NeighborGraph(store, grid, config)
    return EdgeErosion(store, graph, config, AleaPRNG(seed)), graph


class TestErosionTable:
    """Test the size thresholds and deletion ceiling."""

    def test_strategy_thresholds(self, store, config):
        """Test which strategy each platelet count selects."""
        erosion = EdgeErosion(store, config=config, prng=AleaPRNG("t"))
        assert erosion.select_strategy(1) == STRATEGY_NONE
        assert erosion.select_strategy(30) == STRATEGY_NONE
        assert erosion.select_strategy(31) == STRATEGY_DIRECT
        assert erosion.select_strategy(39) == STRATEGY_DIRECT
        assert erosion.select_strategy(40) == STRATEGY_CASCADE
        assert erosion.select_strategy(6200) == STRATEGY_CASCADE

    def test_max_allowed(self, store, config):
        """Test the deletion ceiling for several edge counts."""
        erosion = EdgeErosion(store, config=config, prng=AleaPRNG("t"))
        assert erosion.max_allowed_deletions(0) == 2
        assert erosion.max_allowed_deletions(7) == 2
        assert erosion.max_allowed_deletions(18) == 4
        assert erosion.max_allowed_deletions(24) == 6
        assert erosion.max_allowed_deletions(100) == 25


class TestEdgeErosion:
    """Test erosion on hand-built hexagonal patches."""

    @pytest.mark.asyncio
    async def test_small_plate_untouched(self, store, grid, config, patch_factory):
        """Test that a 19-platelet plate is left alone."""
        plate, _ = await patch_factory(store, 2)
        erosion, graph = erosion_for(store, grid, config)

        report = await erosion.create_irregular_plate_edges(plate.planet_id)

        assert report.results[plate.id].strategy == STRATEGY_NONE
        assert report.total_removed == 0
        assert len(await graph.live_platelets(plate.id)) == 19

    @pytest.mark.asyncio
    async def test_thirty_platelets_untouched(self, store, grid, config, patch_factory):
        """Test that a plate trimmed to exactly 30 platelets is not eroded."""
        plate, rings = await patch_factory(store, 3)
        trimmed = sorted(rings[3])[:7]
        await store.platelets.delete_many([platelet_id(plate.id, c) for c in trimmed])
        erosion, graph = erosion_for(store, grid, config)
        await graph.populate_neighbors(plate.id)
        assert len(await graph.live_platelets(plate.id)) == 30

        report = await erosion.create_irregular_plate_edges(plate.planet_id)

        assert report.results[plate.id].strategy == STRATEGY_NONE
        assert report.total_removed == 0
        assert len(await graph.live_platelets(plate.id)) == 30
        assert await store.platelets.count() == 30

    @pytest.mark.asyncio
    async def test_thirty_one_platelets_eroded(self, store, grid, config, patch_factory):
        """Test that one platelet over the threshold switches erosion on."""
        plate, rings = await patch_factory(store, 3)
        trimmed = sorted(rings[3])[:6]
        await store.platelets.delete_many([platelet_id(plate.id, c) for c in trimmed])
        erosion, graph = erosion_for(store, grid, config)
        await graph.populate_neighbors(plate.id)
        assert len(await graph.live_platelets(plate.id)) == 31

        report = await erosion.create_irregular_plate_edges(plate.planet_id)
        result = report.results[plate.id]

        assert result.strategy == STRATEGY_DIRECT
        assert result.max_allowed == erosion.max_allowed_deletions(result.edge_count)
        assert 1 <= result.removed <= result.max_allowed
        assert len(await graph.live_platelets(plate.id)) == 31 - result.removed
        assert await graph.dangling_references(plate.id) == []

    @pytest.mark.asyncio
    async def test_medium_plate_loses_edge_platelets(self, store, grid, config, patch_factory):
        """Test that a 37-platelet plate loses exactly its capped share of edges."""
        plate, rings = await patch_factory(store, 3)
        erosion, graph = erosion_for(store, grid, config)

        report = await erosion.create_irregular_plate_edges(plate.planet_id)
        result = report.results[plate.id]

        assert result.strategy == STRATEGY_DIRECT
        assert result.edge_count == 18
        assert result.max_allowed == 4
        assert result.removed == 4
        assert set(result.removed_cell_ids) <= rings[3]

        live = await graph.live_platelets(plate.id)
        assert len(live) == 33
        assert not set(result.removed_cell_ids) & set(live)
        assert await graph.dangling_references(plate.id) == []

    @pytest.mark.asyncio
    async def test_large_plate_bounded(self, store, grid, config, patch_factory):
        """Test that a 61-platelet cascade stays within its ceiling."""
        plate, _ = await patch_factory(store, 4)
        erosion, graph = erosion_for(store, grid, config)

        report = await erosion.create_irregular_plate_edges(plate.planet_id)
        result = report.results[plate.id]

        assert result.strategy == STRATEGY_CASCADE
        assert result.edge_count == 24
        assert 1 <= result.removed <= result.max_allowed == 6
        assert len(await graph.live_platelets(plate.id)) == 61 - result.removed
        assert await store.platelets.count() == 61 - result.removed
        assert await graph.dangling_references(plate.id) == []

    @pytest.mark.asyncio
    async def test_cascade_reaches_interior(self, grid, config, patch_factory):
        """Test that cascades cut into the plate instead of peeling its rim."""
        reached_interior = 0
        for seed in range(10):
            store = SimulationStore.memory()
            plate, rings = await patch_factory(store, 4)
            erosion, _ = erosion_for(store, grid, config, seed=f"cascade-{seed}")

            result = (await erosion.create_irregular_plate_edges(plate.planet_id)).results[plate.id]
            assert result.removed <= result.max_allowed
            if set(result.removed_cell_ids) - rings[4]:
                reached_interior += 1
        assert reached_interior > 0

    @pytest.mark.asyncio
    async def test_cascade_chains_are_connected(self, store, grid, config, patch_factory):
        """Test that every removed cell touches another removed cell or the rim."""
        plate, rings = await patch_factory(store, 4)
        erosion, _ = erosion_for(store, grid, config, seed="chain")

        result = (await erosion.create_irregular_plate_edges(plate.planet_id)).results[plate.id]
        removed = set(result.removed_cell_ids)
        for cell in removed - rings[4]:
            assert set(grid.neighbors_of(cell)) & removed

    @pytest.mark.asyncio
    async def test_deterministic_with_seed(self, grid, config, patch_factory):
        """Test that equal seeds remove equal cells."""
        runs = []
        for _ in range(2):
            store = SimulationStore.memory()
            plate, _ = await patch_factory(store, 4)
            erosion, _ = erosion_for(store, grid, config, seed="same")
            report = await erosion.create_irregular_plate_edges(plate.planet_id)
            runs.append(report.results[plate.id].removed_cell_ids)
        assert runs[0] == runs[1]

    @pytest.mark.asyncio
    async def test_report_and_diagnostic_count(self, store, grid, config, patch_factory):
        """Test the per-plate report and the last removed count."""
        await patch_factory(store, 2, plate_id="small")
        await patch_factory(store, 3, plate_id="medium")
        await patch_factory(store, 4, plate_id="large")
        erosion, _ = erosion_for(store, grid, config)

        report = await erosion.create_irregular_plate_edges("planet-1")

        assert sorted(report.results) == ["large", "medium", "small"]
        assert report.total_removed == sum(r.removed for r in report.results.values())
        assert erosion.last_removed_count == report.total_removed
        assert await store.platelets.count() == 19 + 37 + 61 - report.total_removed

    @pytest.mark.asyncio
    async def test_missing_neighbor_ends_cascade(self, store, grid, config, patch_factory):
        """Test that stale references to deleted platelets do not raise."""
        plate, rings = await patch_factory(store, 4)
        await store.platelets.delete_many([f"{plate.id}-{c}" for c in rings[3]])
        erosion, _ = erosion_for(store, grid, config, seed="stale")

        # Erode without refreshing, so rim platelets still point at ring 3
        result = await erosion.erode_plate(plate.id)

        assert result.strategy == STRATEGY_CASCADE
        assert 1 <= result.removed <= result.max_allowed
        assert not set(result.removed_cell_ids) & rings[3]

    @pytest.mark.asyncio
    async def test_storage_failure_aborts_plate_only(self, grid, config, patch_factory):
        """Test that a failed bulk delete marks plates failed without raising."""
        store = SimulationStore.memory()
        store.platelets = RejectingDeletes()
        await patch_factory(store, 3, plate_id="medium")
        await patch_factory(store, 4, plate_id="large")
        erosion, _ = erosion_for(store, grid, config)

        report = await erosion.create_irregular_plate_edges("planet-1")

        assert report.results["medium"].strategy == STRATEGY_FAILED
        assert report.results["large"].strategy == STRATEGY_FAILED
        assert report.total_removed == 0
