import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from fracmesh import Task, Mesh, mesh_from_task


SQUARE_TASK = {
    "spatial_step": 0.2,
    "bodies": [{
        "outer": [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]],
        "inner": [],
        "well": [0.5, 0.5],
        "r_w": 0.05,
        "constraint": [
            [[0.3, 0.3], [0.7, 0.3]],
            [[0.7, 0.3], [0.7, 0.7]],
            [[0.7, 0.7], [0.3, 0.7]],
            [[0.3, 0.7], [0.3, 0.3]],
        ],
    }],
}


@pytest.fixture
def square_task():
    """Unit square, centred well, square fracture around it."""
    return Task.from_dict(SQUARE_TASK)


@pytest.fixture
def square_mesh(square_task):
    return mesh_from_task(square_task, verbose=False)


@pytest.fixture
def triangle_mesh():
    """One right triangle closed by three border cells, no well."""
    mesh = Mesh()
    mesh.vertices = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    cell = mesh.add_regular(mesh.vertices.mean(axis=0), 0.5, (0, 1, 2))
    for i in range(3):
        a = mesh.vertices[(i + 1) % 3]
        b = mesh.vertices[(i + 2) % 3]
        mid = 0.5 * (a + b)
        cell.lengths[i] = float(np.linalg.norm(b - a))
        cell.dists[i] = float(np.linalg.norm(cell.centroid - mid))
        mesh.add_border(cell, i, mid, cell.lengths[i])
    mesh.volume = 0.5
    return mesh
