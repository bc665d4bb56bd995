"""Voronoi graph generation: Delaunay tessellation, wrap stitching and Lloyd's relaxation."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import structlog
from scipy.spatial import Delaunay

logger = structlog.get_logger()

# Provenance of each point in the extended (mirrored) site set
KIND_ORIGINAL = 0
KIND_WRAPPED = 1    # translated copy across a wrap seam
KIND_REFLECTED = 2  # reflection across a hard domain edge

# Relative tolerances, scaled by domain size
_VERTEX_MERGE_TOLERANCE = 1e-9
_AREA_TOLERANCE = 1e-12
_EDGE_MARGIN = 1e-7


@dataclass
class VoronoiGraph:
    """Tessellated map domain.

    Cells are addressed by dense integer ids ``0..n_cells-1`` matching the
    order of ``points``. Later pipeline phases attach their per-cell arrays
    (climate, terrain, rivers) to the same object.

    On wrap-enabled axes a cell's polygon is kept contiguous around its site,
    so vertices of seam cells may lie outside ``[0, width)``; shifting such a
    polygon by the domain size lands exactly on the matching edge of the cells
    on the opposite side.
    """
    width: float
    height: float
    wrap_horizontal: bool
    wrap_vertical: bool
    spacing: float

    points: np.ndarray                     # cells.p[i] = site [x, y]
    cell_vertices: List[np.ndarray]        # cells.v[i] = (k, 2) polygon, CCW; empty if degenerate
    cell_neighbors: List[List[int]]        # cells.c[i] = sorted neighbor ids
    cell_border_flags: np.ndarray          # cells.b[i] = 1 if touching a hard edge
    cell_areas: np.ndarray
    cell_perimeters: np.ndarray

    # Populated by climate, biomes and hydrology
    elevation: Optional[np.ndarray] = field(default=None)
    moisture: Optional[np.ndarray] = field(default=None)
    temperature: Optional[np.ndarray] = field(default=None)
    terrain: Optional[np.ndarray] = field(default=None)
    river_flags: Optional[np.ndarray] = field(default=None)
    sea_level: Optional[float] = field(default=None)

    @property
    def n_cells(self) -> int:
        return len(self.points)

    def is_degenerate(self, cell_id: int) -> bool:
        """True for zero-area placeholder cells."""
        return len(self.cell_vertices[cell_id]) < 3

    @property
    def degenerate_count(self) -> int:
        return sum(1 for verts in self.cell_vertices if len(verts) < 3)


def polygon_area(vertices: np.ndarray) -> float:
    """Absolute polygon area by the shoelace formula."""
    if len(vertices) < 3:
        return 0.0
    x = vertices[:, 0]
    y = vertices[:, 1]
    return 0.5 * abs(float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


def polygon_perimeter(vertices: np.ndarray) -> float:
    """Closed polygon perimeter."""
    if len(vertices) < 2:
        return 0.0
    edges = np.roll(vertices, -1, axis=0) - vertices
    return float(np.sum(np.hypot(edges[:, 0], edges[:, 1])))


def vertex_centroid(vertices: np.ndarray) -> np.ndarray:
    """Arithmetic mean of polygon vertices."""
    return np.mean(vertices, axis=0)


def unwrap_polygon(vertices: np.ndarray, anchor: np.ndarray, width: float, height: float,
                   wrap_horizontal: bool, wrap_vertical: bool) -> np.ndarray:
    """
    Shift vertices by whole domain sizes so each lies within half a domain of
    ``anchor`` along wrapped axes.
    """
    result = np.array(vertices, dtype=np.float64, copy=True)
    if wrap_horizontal:
        dx = result[:, 0] - anchor[0]
        result[:, 0] -= width * np.round(dx / width)
    if wrap_vertical:
        dy = result[:, 1] - anchor[1]
        result[:, 1] -= height * np.round(dy / height)
    return result


def sanitize_points(points: np.ndarray, width: float, height: float,
                    wrap_horizontal: bool, wrap_vertical: bool) -> np.ndarray:
    """
    Bring sites into the canonical domain.

    Wrapped axes are reduced modulo the domain size into ``[0, size)``; hard
    axes are clamped just inside the edges so that a site never coincides with
    its own reflection.
    """
    result = np.array(points, dtype=np.float64, copy=True).reshape(-1, 2)
    for axis, size, wrap in ((0, width, wrap_horizontal), (1, height, wrap_vertical)):
        column = np.nan_to_num(result[:, axis], nan=size / 2)
        if wrap:
            column = np.mod(column, size)
            column[column >= size] = 0.0
        else:
            margin = size * _EDGE_MARGIN
            column = np.clip(column, margin, size - margin)
        result[:, axis] = column
    return result


def build_extended_sites(points: np.ndarray, width: float, height: float,
                         wrap_horizontal: bool, wrap_vertical: bool
                         ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Surround the sites with mirror copies.

    Wrapped axes get copies translated by +/- the domain size; hard axes get
    reflections across both edges, which makes the edge the exact bisector
    and so clips every original cell to the domain. Originals stay first.

    Returns:
        Tuple of (extended points, owner id per point, KIND_* per point)
    """
    n = len(points)
    extended = points
    owner = np.arange(n, dtype=np.int64)
    kind = np.full(n, KIND_ORIGINAL, dtype=np.int8)

    for axis, size, wrap in ((0, width, wrap_horizontal), (1, height, wrap_vertical)):
        low = extended.copy()
        high = extended.copy()
        if wrap:
            low[:, axis] -= size
            high[:, axis] += size
            copy_kind = np.maximum(kind, KIND_WRAPPED)
        else:
            low[:, axis] = -extended[:, axis]
            high[:, axis] = 2 * size - extended[:, axis]
            copy_kind = np.full_like(kind, KIND_REFLECTED)
        extended = np.vstack([extended, low, high])
        owner = np.concatenate([owner, owner, owner])
        kind = np.concatenate([kind, copy_kind, copy_kind])

    return extended, owner, kind


def compute_circumcenters(points: np.ndarray, simplices: np.ndarray) -> np.ndarray:
    """Circumcenter of every triangle, computed relative to its first vertex."""
    a = points[simplices[:, 0]]
    b = points[simplices[:, 1]] - a
    c = points[simplices[:, 2]] - a

    d = 2.0 * (b[:, 0] * c[:, 1] - b[:, 1] * c[:, 0])
    b_sq = b[:, 0] ** 2 + b[:, 1] ** 2
    c_sq = c[:, 0] ** 2 + c[:, 1] ** 2

    with np.errstate(divide="ignore", invalid="ignore"):
        ux = (c[:, 1] * b_sq - b[:, 1] * c_sq) / d
        uy = (b[:, 0] * c_sq - c[:, 0] * b_sq) / d

    centers = np.column_stack([ux, uy]) + a
    # Collinear triangles: fall back to the vertex mean
    flat = ~np.isfinite(centers).all(axis=1)
    if np.any(flat):
        centers[flat] = (a[flat] + points[simplices[flat, 1]] + points[simplices[flat, 2]]) / 3.0
    return centers


def _incident_triangles(simplices: np.ndarray, n_points: int) -> Tuple[np.ndarray, np.ndarray]:
    """Group triangle ids by their vertex for the first ``n_points`` vertices.

    Returns:
        (sorted triangle ids, offsets) where the triangles of point ``i`` are
        ``tri_ids[offsets[i]:offsets[i + 1]]``
    """
    flat = simplices.ravel()
    tri_ids = np.repeat(np.arange(len(simplices)), 3)
    mask = flat < n_points
    vertex_ids = flat[mask]
    tri_ids = tri_ids[mask]
    order = np.argsort(vertex_ids, kind="stable")
    offsets = np.searchsorted(vertex_ids[order], np.arange(n_points + 1))
    return tri_ids[order], offsets


def build_cell_polygon(site: np.ndarray, corners: np.ndarray, width: float, height: float,
                       wrap_horizontal: bool, wrap_vertical: bool) -> np.ndarray:
    """
    Order a cell's Voronoi vertices counter-clockwise around its site, merge
    coincident corners and snap hard-edge coordinates onto the domain.

    Returns:
        (k, 2) polygon, or an empty (0, 2) array for a degenerate cell
    """
    empty = np.zeros((0, 2), dtype=np.float64)
    if len(corners) < 3:
        return empty

    rel = corners - site
    order = np.argsort(np.arctan2(rel[:, 1], rel[:, 0]), kind="stable")
    ordered = corners[order]

    tolerance = _VERTEX_MERGE_TOLERANCE * max(width, height)
    kept = [ordered[0]]
    for vertex in ordered[1:]:
        if np.hypot(*(vertex - kept[-1])) > tolerance:
            kept.append(vertex)
    if len(kept) > 1 and np.hypot(*(kept[-1] - kept[0])) <= tolerance:
        kept.pop()

    polygon = np.array(kept, dtype=np.float64)
    if not wrap_horizontal:
        polygon[:, 0] = np.clip(polygon[:, 0], 0.0, width)
    if not wrap_vertical:
        polygon[:, 1] = np.clip(polygon[:, 1], 0.0, height)

    if len(polygon) < 3 or polygon_area(polygon) <= _AREA_TOLERANCE * width * height:
        return empty
    return polygon


def build_cell_connectivity(tri: Delaunay, owner: np.ndarray, kind: np.ndarray,
                            n_cells: int) -> Tuple[List[List[int]], np.ndarray]:
    """
    Derive cell adjacency from Delaunay edges.

    Edges to wrapped copies are remapped to the copy's original id; edges to
    reflected copies only mark the cell as a border cell.

    Returns:
        Tuple of (cell_neighbors, border_flags)
    """
    indptr, indices = tri.vertex_neighbor_vertices
    neighbor_sets = [set() for _ in range(n_cells)]
    border_flags = np.zeros(n_cells, dtype=np.uint8)

    for i in range(n_cells):
        for k in indices[indptr[i]:indptr[i + 1]]:
            if kind[k] == KIND_REFLECTED:
                border_flags[i] = 1
                continue
            j = int(owner[k])
            if j != i:
                neighbor_sets[i].add(j)

    # Adjacency across the outermost mirror layer can be one-sided
    for i in range(n_cells):
        for j in neighbor_sets[i]:
            neighbor_sets[j].add(i)

    return [sorted(s) for s in neighbor_sets], border_flags


def generate_voronoi_graph(points: np.ndarray, width: float, height: float,
                           wrap_horizontal: bool = False,
                           wrap_vertical: bool = False) -> VoronoiGraph:
    """
    Tessellate the domain into one Voronoi cell per site.

    Args:
        points: (n, 2) site coordinates
        width: Domain width
        height: Domain height
        wrap_horizontal: Stitch the left and right edges together
        wrap_vertical: Stitch the top and bottom edges together

    Returns:
        VoronoiGraph with polygons, adjacency, areas and perimeters
    """
    sites = sanitize_points(points, width, height, wrap_horizontal, wrap_vertical)
    n_cells = len(sites)

    extended, owner, kind = build_extended_sites(
        sites, width, height, wrap_horizontal, wrap_vertical)
    tri = Delaunay(extended)
    circumcenters = compute_circumcenters(tri.points, tri.simplices)
    tri_ids, offsets = _incident_triangles(tri.simplices, n_cells)

    logger.debug("Delaunay triangulation built", sites=n_cells,
                 extended_sites=len(extended), triangles=len(tri.simplices))

    cell_vertices = []
    areas = np.zeros(n_cells, dtype=np.float64)
    perimeters = np.zeros(n_cells, dtype=np.float64)
    for i in range(n_cells):
        corners = circumcenters[tri_ids[offsets[i]:offsets[i + 1]]]
        polygon = build_cell_polygon(sites[i], corners, width, height,
                                     wrap_horizontal, wrap_vertical)
        cell_vertices.append(polygon)
        areas[i] = polygon_area(polygon)
        perimeters[i] = polygon_perimeter(polygon)

    cell_neighbors, border_flags = build_cell_connectivity(tri, owner, kind, n_cells)

    graph = VoronoiGraph(
        width=width,
        height=height,
        wrap_horizontal=wrap_horizontal,
        wrap_vertical=wrap_vertical,
        spacing=float(np.sqrt(width * height / n_cells)),
        points=sites,
        cell_vertices=cell_vertices,
        cell_neighbors=cell_neighbors,
        cell_border_flags=border_flags,
        cell_areas=areas,
        cell_perimeters=perimeters,
    )

    degenerate = graph.degenerate_count
    if degenerate:
        logger.warning("Degenerate cells retained as placeholders", count=degenerate)
    return graph


def relax_points(graph: VoronoiGraph, n_iterations: int = 3) -> VoronoiGraph:
    """Apply Lloyd's relaxation to even out cell sizes.

    Each iteration moves every site to the vertex centroid of its cell
    (unwrapped around the site, then re-wrapped into the domain) and
    re-tessellates. Degenerate cells keep their site.

    Args:
        graph: Current tessellation
        n_iterations: Number of relaxation iterations (0 returns ``graph``)

    Returns:
        Tessellation of the relaxed sites
    """
    if n_iterations <= 0:
        return graph

    logger.info("Starting Lloyd's relaxation", iterations=n_iterations)

    for iteration in range(n_iterations):
        new_points = graph.points.copy()
        for i, vertices in enumerate(graph.cell_vertices):
            if len(vertices) < 3:
                continue
            unwrapped = unwrap_polygon(vertices, graph.points[i], graph.width, graph.height,
                                       graph.wrap_horizontal, graph.wrap_vertical)
            new_points[i] = vertex_centroid(unwrapped)

        graph = generate_voronoi_graph(new_points, graph.width, graph.height,
                                       graph.wrap_horizontal, graph.wrap_vertical)
        logger.info(f"Relaxation iteration {iteration + 1} complete")

    return graph
