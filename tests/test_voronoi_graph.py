"""Tests for Voronoi graph generation."""

import numpy as np
import pytest
from py_worldgen.core.alea_prng import AleaPRNG
from py_worldgen.core.sites import sample_sites
from py_worldgen.core.voronoi_graph import (
    generate_voronoi_graph,
    polygon_area,
    polygon_perimeter,
    relax_points,
    sanitize_points,
    unwrap_polygon,
)

WIDTH, HEIGHT = 1000.0, 600.0


def _signed_area(vertices):
    x, y = vertices[:, 0], vertices[:, 1]
    return 0.5 * (np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def _build(count, seed, wrap_x, wrap_y):
    points = sample_sites(count, WIDTH, HEIGHT, AleaPRNG((seed, "sites")),
                          wrap_horizontal=wrap_x, wrap_vertical=wrap_y).points
    return generate_voronoi_graph(points, WIDTH, HEIGHT, wrap_x, wrap_y)


class TestPolygonHelpers:
    """Test polygon geometry helpers."""

    def test_square(self):
        """Test area and perimeter of a unit square."""
        square = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=float)
        assert polygon_area(square) == pytest.approx(1.0)
        assert polygon_perimeter(square) == pytest.approx(4.0)

    def test_degenerate_polygon(self):
        """Test fewer than three vertices have zero area."""
        assert polygon_area(np.zeros((2, 2))) == 0.0
        assert polygon_area(np.zeros((0, 2))) == 0.0

    def test_unwrap_polygon(self):
        """Test vertices across the seam are shifted next to the anchor."""
        verts = np.array([[995.0, 10.0], [3.0, 12.0], [5.0, 30.0]])
        result = unwrap_polygon(verts, np.array([998.0, 20.0]), WIDTH, HEIGHT, True, False)
        np.testing.assert_allclose(result[:, 0], [995.0, 1003.0, 1005.0])
        np.testing.assert_allclose(result[:, 1], verts[:, 1])

    def test_sanitize_points(self):
        """Test wrapped axes are reduced modulo size and hard axes clamped."""
        pts = np.array([[-10.0, -5.0], [1010.0, 700.0]])
        result = sanitize_points(pts, WIDTH, HEIGHT, True, False)
        np.testing.assert_allclose(result[:, 0], [990.0, 10.0])
        assert 0.0 < result[0, 1] < 1e-3
        assert HEIGHT - 1e-3 < result[1, 1] < HEIGHT


class TestBoundedGraph:
    """Test tessellation of a domain with hard edges."""

    @pytest.fixture
    def graph(self):
        return _build(200, 7, False, False)

    def test_cell_count(self, graph):
        """Test one cell per site."""
        assert graph.n_cells == 200
        assert len(graph.cell_vertices) == 200
        assert len(graph.cell_neighbors) == 200

    def test_polygons_valid(self, graph):
        """Test every polygon is a CCW polygon with at least three vertices."""
        for verts in graph.cell_vertices:
            assert len(verts) >= 3
            assert _signed_area(verts) > 0

    def test_vertices_inside_domain(self, graph):
        """Test cells are clipped to the domain."""
        for verts in graph.cell_vertices:
            assert np.all(verts[:, 0] >= 0) and np.all(verts[:, 0] <= WIDTH)
            assert np.all(verts[:, 1] >= 0) and np.all(verts[:, 1] <= HEIGHT)

    def test_areas_tile_domain(self, graph):
        """Test cell areas sum to the domain area."""
        assert graph.cell_areas.sum() == pytest.approx(WIDTH * HEIGHT, rel=1e-6)

    def test_neighbor_symmetry(self, graph):
        """Test adjacency is symmetric and irreflexive."""
        for i, neighbors in enumerate(graph.cell_neighbors):
            assert i not in neighbors
            for j in neighbors:
                assert i in graph.cell_neighbors[j]

    def test_every_cell_has_neighbors(self, graph):
        """Test the graph is connected locally."""
        assert all(len(n) >= 2 for n in graph.cell_neighbors)

    def test_border_flags(self, graph):
        """Test cells touching a hard edge are flagged."""
        tol = 1e-6
        for i, verts in enumerate(graph.cell_vertices):
            touches = (
                np.any(verts[:, 0] < tol) or np.any(verts[:, 0] > WIDTH - tol)
                or np.any(verts[:, 1] < tol) or np.any(verts[:, 1] > HEIGHT - tol)
            )
            if touches:
                assert graph.cell_border_flags[i] == 1
        assert 0 < graph.cell_border_flags.sum() < graph.n_cells

    def test_perimeters_positive(self, graph):
        """Test perimeters are computed for every cell."""
        assert np.all(graph.cell_perimeters > 0)


class TestWrappedGraph:
    """Test tessellation with wrap-enabled axes."""

    @pytest.fixture
    def graph(self):
        return _build(200, 21, True, False)

    @pytest.fixture
    def torus(self):
        return _build(150, 22, True, True)

    def test_areas_tile_domain(self, graph, torus):
        """Test seam cells still tile the domain exactly."""
        assert graph.cell_areas.sum() == pytest.approx(WIDTH * HEIGHT, rel=1e-6)
        assert torus.cell_areas.sum() == pytest.approx(WIDTH * HEIGHT, rel=1e-6)

    def test_neighbors_cross_seam(self, graph):
        """Test some adjacency spans the left/right seam."""
        pts = graph.points
        crossing = [
            (i, j)
            for i, neighbors in enumerate(graph.cell_neighbors)
            for j in neighbors
            if abs(pts[i, 0] - pts[j, 0]) > WIDTH / 2
        ]
        assert crossing

    def test_neighbor_symmetry(self, graph, torus):
        """Test adjacency stays symmetric after seam remapping."""
        for g in (graph, torus):
            for i, neighbors in enumerate(g.cell_neighbors):
                assert i not in neighbors
                for j in neighbors:
                    assert i in g.cell_neighbors[j]

    def test_border_flags_only_on_hard_edges(self, graph, torus):
        """Test only the hard top/bottom edges produce border cells."""
        assert torus.cell_border_flags.sum() == 0
        flagged = np.nonzero(graph.cell_border_flags)[0]
        assert len(flagged) > 0
        for i in flagged:
            verts = graph.cell_vertices[i]
            assert np.min(verts[:, 1]) < 1e-6 or np.max(verts[:, 1]) > HEIGHT - 1e-6

    def test_seam_polygons_match_across_edge(self, graph):
        """Test a polygon hanging over the seam lines up with cells on the far side."""
        seam_cells = [i for i, v in enumerate(graph.cell_vertices) if np.min(v[:, 0]) < 0]
        assert seam_cells
        all_vertices = np.vstack(graph.cell_vertices)
        for i in seam_cells:
            for vx, vy in graph.cell_vertices[i]:
                if vx >= 0:
                    continue
                shifted = np.array([vx + WIDTH, vy])
                distance = np.min(np.hypot(*(all_vertices - shifted).T))
                assert distance < 1e-6


class TestDegenerateCells:
    """Test degenerate input handling."""

    def test_duplicate_site_is_placeholder(self):
        """Test a coincident site yields a zero-area cell instead of failing."""
        points = sample_sites(60, WIDTH, HEIGHT, AleaPRNG(99)).points
        points = np.vstack([points, points[:1]])
        graph = generate_voronoi_graph(points, WIDTH, HEIGHT)
        assert graph.n_cells == 61
        assert graph.degenerate_count == 1
        degenerate = [i for i in range(graph.n_cells) if graph.is_degenerate(i)]
        assert graph.cell_areas[degenerate[0]] == 0.0
        assert len(graph.cell_vertices[degenerate[0]]) == 0


class TestRelaxation:
    """Test Lloyd's relaxation."""

    @pytest.fixture
    def graph(self):
        rng = np.random.default_rng(5)
        points = rng.uniform([0, 0], [WIDTH, HEIGHT], size=(150, 2))
        return generate_voronoi_graph(points, WIDTH, HEIGHT, True, False)

    def test_zero_iterations_is_identity(self, graph):
        """Test zero iterations leaves the graph untouched."""
        assert relax_points(graph, 0) is graph

    def test_relaxation_evens_out_cells(self, graph):
        """Test relaxed cells are more uniform in size."""
        relaxed = relax_points(graph, 3)
        assert relaxed.n_cells == graph.n_cells
        assert np.std(relaxed.cell_areas) < np.std(graph.cell_areas)
        assert relaxed.cell_areas.sum() == pytest.approx(WIDTH * HEIGHT, rel=1e-6)

    def test_relaxed_sites_in_domain(self, graph):
        """Test relaxed sites are wrapped or clamped back into the domain."""
        relaxed = relax_points(graph, 2)
        assert np.all(relaxed.points[:, 0] >= 0) and np.all(relaxed.points[:, 0] < WIDTH)
        assert np.all(relaxed.points[:, 1] > 0) and np.all(relaxed.points[:, 1] < HEIGHT)
