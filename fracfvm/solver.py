"""
fracfvm/solver.py
-----------------
Time-stepping loop tying the pieces together:

    controller.begin_step -> NewtonDriver.solve -> commit + accept
                                                 | rollback + reject
"""
import logging

import attrs
import numpy as np

from fraccore.config import SimulationConfig
from fraccore.display import SimulationDisplay
from fraccore.errors import FracsimError
from fracmesh.elements import CellType
from .newton import NewtonDriver
from .physics.base import StepContext
from .state import StateStore
from .timestep import TimeStepController

logger = logging.getLogger(__name__)


@attrs.frozen
class StepRecord:
    time: float
    ht: float
    iterations: int
    period: int
    well_pressure: float
    average_pressure: float
    rate: float
    """Total volumetric rate into the well through its links."""


class Simulation:
    def __init__(self, mesh, model, schedule, config=None, title="Simulation", verbose=True):
        """
        Args:
            mesh (Mesh): Built cell graph.
            model (FlowModel): Flow model; its properties should be set already.
            schedule (list of Period): Production schedule.
            config (SimulationConfig): Newton, time-step and threading options.
            title (str): Run name for the console header.
            verbose (bool): Print the progress table.
        """
        self.mesh = mesh
        self.model = model
        self.config = config if config is not None else SimulationConfig()
        if mesh.height != self.config.height:
            logger.warning("Mesh was built with height %g, configuration says %g",
                           mesh.height, self.config.height)

        model.load_mesh(mesh)
        self.state = StateStore(len(mesh), model.num_variables)
        model.set_initial_state(self.state)

        self.controller = TimeStepController(schedule, self.config.timestep, mesh.well_links)
        self.newton = NewtonDriver(mesh, model, self.config.newton, workers=self.config.workers)
        self.history = []

        self._pressure_cells = [c.id for c in mesh.regular_cells() if c.type is not CellType.WELL]
        context = f"{type(model).__name__} | {len(mesh)} cells | {self.newton.glob.nnz} nonzeros"
        self.display = SimulationDisplay(title, context, enabled=verbose)

    def _record(self, iterations):
        st = self.state
        well = self.mesh.well_id
        p_well = float(st.next[well, 0]) if well is not None else float("nan")
        rate = float(np.sum(self.link_rates())) if well is not None else 0.0
        rec = StepRecord(
            time=self.controller.time,
            ht=self.controller.step,
            iterations=iterations,
            period=self.controller.period_index,
            well_pressure=p_well,
            average_pressure=st.average(0, self._pressure_cells),
            rate=rate,
        )
        self.history.append(rec)
        return rec

    def run(self):
        """
        Runs the schedule to its end.

        Returns:
            list of StepRecord

        Raises:
            NonConvergenceError: a step failed at the minimum step size.
        """
        ctl = self.controller
        disp = self.display
        disp.header()
        disp.section("Time Stepping")
        disp.period(0, ctl.period.mode.name, ctl.period.value)
        self.model.set_period(ctl.controls)
        disp.setup_stats_columns(["Step", "Time", "ht", "Iters", "P_well", "P_avg"],
                                 [6, 12, 12, 6, 12, 12])

        try:
            while not ctl.finished:
                period = ctl.period_index
                ht = ctl.begin_step()
                if ctl.period_index != period:
                    self.model.set_period(ctl.controls)
                    disp.period(ctl.period_index, ctl.period.mode.name, ctl.period.value)

                result = self.newton.solve(self.state, StepContext(ht, self.state))
                if result.converged:
                    self.state.commit()
                    ctl.accept(result.iterations)
                    rec = self._record(result.iterations)
                    disp.log_stats(len(self.history), rec.time, rec.ht, rec.iterations,
                                   rec.well_pressure, rec.average_pressure)
                else:
                    self.state.rollback()
                    logger.warning("Newton failed at t = %.6g with ht = %.6g: %s",
                                   ctl.time, ht, result.reason)
                    ctl.reject(result.reason, result.cell)
        except FracsimError as exc:
            disp.error(str(exc))
            raise
        finally:
            self.newton.close()

        disp.success()
        return self.history

    def export_state(self):
        """ CellSnapshot per cell of the latest solution. """
        return list(self.state.export(self.mesh))

    def link_rates(self):
        """ Volumetric rate through each WellLink, in mesh.well_links order. """
        return self.model.link_rates(self.state)
