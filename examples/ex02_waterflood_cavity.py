"""
ex02_waterflood_cavity.py
-------------------------
Two-phase water/oil run on a rectangle with a cavity.
Water is injected for a while, then the well is put on production at a
fixed bottom-hole pressure. Plots the water saturation map.
"""
import numpy as np
import matplotlib.pyplot as plt
import matplotlib.tri as tri

from fraccore import SimulationConfig, NewtonOptions, TimeStepOptions
from fracmesh import Task, mesh_from_task
from fracfvm import WaterOilModel, Skeleton, CoreyRelPerm, Period, Simulation

TASK = {
    "spatial_step": 0.1,
    "bodies": [{
        "outer": [[0.0, 0.0], [2.0, 0.0], [2.0, 1.0], [0.0, 1.0]],
        # Impermeable cavity to the right of the well
        "inner": [[[1.4, 0.4], [1.7, 0.4], [1.7, 0.6], [1.4, 0.6]]],
        "well": [0.8, 0.5],
        "r_w": 0.05,
        "constraint": [
            [[0.5, 0.3], [1.1, 0.3]],
            [[1.1, 0.3], [1.1, 0.7]],
            [[1.1, 0.7], [0.5, 0.7]],
            [[0.5, 0.7], [0.5, 0.3]],
        ],
    }],
}


def run():
    print("--- Waterflood with Cavity ---")

    # 1. Mesh
    mesh = mesh_from_task(Task.from_dict(TASK))
    print(f"   -> {mesh}")

    # 2. Model
    model = WaterOilModel()
    model.set_properties(
        skeleton=Skeleton(sw_init=0.15, sw_out=0.15, frac_perm_factor=200.0),
        relperm=CoreyRelPerm(s_wc=0.15, s_or=0.2, n_w=2.0, n_o=2.5),
        border_pressure=False,
    )

    schedule = [
        Period(0.4, rate=-0.05),   # injection
        Period(1.0, pwf=0.9),
    ]
    config = SimulationConfig(
        newton=NewtonOptions(tolerance=1e-6, preconditioners=("ilu", "jacobi", "direct")),
        timestep=TimeStepOptions(ht=0.002, ht_min=0.0001, ht_max=0.05),
    )

    # 3. Run
    sim = Simulation(mesh, model, schedule, config, title="Waterflood with Cavity")
    sim.run()

    # 4. Visualization
    snaps = [s for s in sim.export_state() if s.type in ("INTERIOR", "FRACTURE")]
    sw = np.array([s.values[1] for s in snaps])
    triangles = np.array([mesh[s.id].points for s in snaps])
    triang = tri.Triangulation(mesh.vertices[:, 0], mesh.vertices[:, 1], triangles)

    fig, ax = plt.subplots(figsize=(10, 5))
    tpc = ax.tripcolor(triang, facecolors=sw, cmap="Blues", vmin=0.0, vmax=1.0)
    fig.colorbar(tpc, ax=ax, label="Water saturation")
    ax.set_aspect("equal")
    ax.set_title("Water Saturation")
    plt.show()


if __name__ == "__main__":
    run()
