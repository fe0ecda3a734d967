"""
ex01_square_drawdown.py
-----------------------
Single-phase oil produced from a well inside a square fracture.
Constant rate for 0.5, then the well is switched to a fixed bottom-hole
pressure. Borders are held at the initial pressure.
"""
import os
import logging

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.tri as tri

from fraccore import SimulationConfig, TimeStepOptions
from fracmesh import load_task, mesh_from_task, MeshQuality
from fracfvm import OilModel, Skeleton, Period, Simulation

HERE = os.path.dirname(os.path.abspath(__file__))


def plot_pressure(mesh, p, title):
    regular = mesh.regular_cells()
    triangles = np.array([c.points for c in regular])
    triang = tri.Triangulation(mesh.vertices[:, 0], mesh.vertices[:, 1], triangles)

    fig, ax = plt.subplots(figsize=(7, 6))
    tpc = ax.tripcolor(triang, facecolors=p[:len(regular)], cmap="viridis", edgecolors="k", lw=0.2)
    fig.colorbar(tpc, ax=ax, label="Pressure")
    well = mesh.well_cell.centroid
    ax.plot(well[0], well[1], "r*", markersize=12)
    ax.set_aspect("equal")
    ax.set_title(title)
    plt.show()


def run():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = SimulationConfig(timestep=TimeStepOptions(ht=0.005, ht_min=0.0005, ht_max=0.1))

    # 1. Mesh
    task = load_task(os.path.join(HERE, "square_well.json"))
    mesh = mesh_from_task(task, height=config.height)

    inspector = MeshQuality(mesh)
    inspector.analyze()
    inspector.print_report()

    # 2. Model
    model = OilModel()
    model.set_properties(skeleton=Skeleton(perm=1.0, m0=0.2, frac_perm_factor=500.0))

    schedule = [
        Period(0.5, rate=0.1),
        Period(1.0, pwf=0.8),
    ]

    # 3. Run
    sim = Simulation(mesh, model, schedule, config, title="Square Well Drawdown")
    history = sim.run()

    print("--- Well Links ---")
    for link, q in zip(mesh.well_links, sim.link_rates()):
        print(f"   Cell {link.cell_id:4d} face {link.face}: q = {q:.4e}")

    # 4. Visualization
    t = [rec.time for rec in history]
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(11, 4))
    ax1.plot(t, [rec.well_pressure for rec in history], "b.-", label="Well")
    ax1.plot(t, [rec.average_pressure for rec in history], "g.-", label="Average")
    ax1.set_xlabel("Time")
    ax1.set_ylabel("Pressure")
    ax1.legend()
    ax1.grid(True, alpha=0.3)

    ax2.plot(t, [rec.rate for rec in history], "r.-")
    ax2.set_xlabel("Time")
    ax2.set_ylabel("Well rate")
    ax2.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.show()

    plot_pressure(mesh, sim.state.previous[:, 0], "Pressure at end of schedule")


if __name__ == "__main__":
    run()
