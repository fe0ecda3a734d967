"""
fracmesh/topology.py
--------------------
Turns a triangulation into the cell graph used by the flow models.

Order of operations matters: every cell is classified as fracture or not
before any cell is absorbed into the well, and ids handed out in the first
pass are never renumbered.
"""
import logging

import numpy as np

from fraccore.errors import GeometryError
from .elements import CellType, GEOM_TOL, FACES, WellLink
from .mesh import Mesh
from .triangulation import DelaunayAdapter

logger = logging.getLogger(__name__)


def _signed_area(tri):
    (x1, y1), (x2, y2), (x3, y3) = tri
    return 0.5 * ((x2 - x1) * (y3 - y1) - (x3 - x1) * (y2 - y1))


def build_mesh(adapter, spatial_step, well, fracture, height=1.0, verbose=True):
    """
    Builds the Mesh from a Delaunay adapter.

    Args:
        adapter (DelaunayAdapter): Source triangulation.
        spatial_step (float): Nominal edge length h, used for tolerances.
        well (tuple): (point, r_w) of the single well.
        fracture (Polygon): Fracture region. Cells inside it are FRACTURE.
        height (float): Formation thickness; cell volume = area * height.
        verbose (bool): Print progress.

    Returns:
        Mesh

    Raises:
        GeometryError: zero-area triangle, or no fracture cell within r_w
            of the well.
    """
    well_pt = np.asarray(well[0], dtype=np.float64)
    r_w = float(well[1])
    say = print if verbose else (lambda *a, **k: None)

    say("--- Building Mesh ---")
    mesh = Mesh(height=height)
    faces = adapter.finite_faces()
    face_to_id = {}
    vertex_index = {}

    # --- 1. Enumerate Triangles ---
    for face in faces:
        tri = adapter.triangle(face)
        area = abs(_signed_area(tri))
        if area <= GEOM_TOL:
            raise GeometryError(f"Triangle {face} has zero area: {tri.tolist()}")

        # --- 2. Collect Vertices (insertion ordered) ---
        local = []
        for i in range(FACES):
            v = adapter.vertex(face, i)
            if v not in vertex_index:
                vertex_index[v] = len(vertex_index)
            local.append(vertex_index[v])

        cell = mesh.add_regular(tri.mean(axis=0), area * height, local)
        face_to_id[face] = cell.id
        mesh.volume += cell.volume

    mesh.vertices = np.array([adapter.point(v) for v in vertex_index])

    # --- 3. Faces and Border Cells ---
    for face in faces:
        cell = mesh.cells[face_to_id[face]]
        for i in range(FACES):
            a = mesh.vertices[cell.points[(i + 1) % 3]]
            b = mesh.vertices[cell.points[(i + 2) % 3]]
            mid = 0.5 * (a + b)
            cell.lengths[i] = float(np.linalg.norm(b - a))
            cell.dists[i] = float(np.linalg.norm(cell.centroid - mid))

            nebr = adapter.neighbor(face, i)
            if nebr is None:
                mesh.add_border(cell, i, mid, cell.lengths[i],
                                points=(cell.points[(i + 1) % 3], cell.points[(i + 2) % 3]))
            else:
                cell.neighbors[i] = face_to_id[nebr]

    say(f"   -> Triangles: {mesh.inner_count}")
    say(f"   -> Border cells: {mesh.border_count}")

    # --- 4. Fracture Classification ---
    regular = mesh.regular_cells()
    centroids = np.array([c.centroid for c in regular])
    in_frac = fracture.contains(centroids, tol=1e-9 * spatial_step)
    for cell, flag in zip(regular, in_frac):
        if flag:
            cell.type = CellType.FRACTURE
    say(f"   -> Fracture cells: {int(in_frac.sum())}")

    # --- 5. Well Lumping ---
    well_cell = mesh.add_well(well_pt)
    for cell in regular:
        if cell.type is CellType.FRACTURE and np.linalg.norm(cell.centroid - well_pt) <= r_w:
            cell.type = CellType.WELL
            mesh.well_volume += cell.volume
            mesh.absorbed.append(cell.id)

    if not mesh.absorbed:
        raise GeometryError(
            f"No fracture cell lies within r_w = {r_w} of the well at {tuple(well_pt)}; "
            "the well would be disconnected."
        )
    well_cell.volume = mesh.well_volume

    absorbed = set(mesh.absorbed)
    for cell in regular:
        if cell.type is CellType.WELL:
            continue
        for i in range(FACES):
            if cell.neighbors[i] not in absorbed:
                continue
            a = mesh.vertices[cell.points[(i + 1) % 3]]
            b = mesh.vertices[cell.points[(i + 2) % 3]]
            mid = 0.5 * (a + b)
            link = WellLink(cell.id, i, cell.lengths[i], np.linalg.norm(well_pt - mid))
            cell.neighbors[i] = mesh.well_id
            well_cell.add_link(link)
            mesh.well_links.append(link)

    say(f"   -> Absorbed into well: {len(mesh.absorbed)} (links: {len(mesh.well_links)})")
    logger.debug(
        "Mesh built: %d triangles, %d border, %d absorbed, %d well links",
        mesh.inner_count, mesh.border_count, len(mesh.absorbed), len(mesh.well_links),
    )
    return mesh


def mesh_from_task(task, height=1.0, verbose=True):
    """ Generates points, triangulates and builds the Mesh for a task. """
    body = task.body
    adapter = DelaunayAdapter.from_task(task)
    return build_mesh(adapter, task.spatial_step, (body.well, body.r_w), body.fracture,
                      height=height, verbose=verbose)
