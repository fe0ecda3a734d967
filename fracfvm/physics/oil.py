"""
fracfvm/physics/oil.py
----------------------
Single-phase, slightly compressible oil. One unknown per cell: pressure.

Rows are mass balances per unit volume:
    phi*rho|next - phi*rho|prev + ht/V * sum(T * lambda_up * dPhi) (+ well sink)
"""
import numpy as np

from .base import FlowModel, StepContext
from .properties import Fluid
from ..timestep import BoundaryMode


class OilModel(FlowModel):
    def __init__(self):
        super().__init__()
        self.fluid = Fluid()

    @property
    def num_variables(self):
        return 1

    @property
    def variable_names(self):
        return ("p",)

    @property
    def bounds(self):
        return [(0.0, np.inf)]

    def set_initial_state(self, state):
        state.fill(np.arange(state.n_cells), [self.skeleton.p_init])

    def mass(self, p):
        return self.skeleton.porosity(p) * self.fluid.density(p)

    def flux(self, cell, face, nebr, p_self, p_nebr, ctx):
        """ Mass flux leaving `cell` across one face. """
        T = self.transmissibility(cell, face, nebr)
        up = p_self if self.upwind(cell, nebr, self.fluid, ctx) == 0 else p_nebr
        return T * self.fluid.mobility(up) * (
            self.potential(cell, p_self, self.fluid) - self.potential(nebr, p_nebr, self.fluid))

    def residual_regular(self, cell, x, ctx):
        p = x[0][0]
        p_prev = ctx.state.previous[cell.id, 0]
        H = self.mass(p) - self.mass(p_prev)
        for k, face, nebr in self.faces(cell):
            H += ctx.ht / cell.volume * self.flux(cell, face, nebr, p, x[k][0], ctx)
        return [H]

    def residual_border(self, cell, x, ctx):
        if self.border_pressure:
            return [x[0][0] - self.skeleton.p_out]
        return [x[0][0] - x[1][0]]

    def residual_absorbed(self, cell, x, ctx):
        return [x[0][0] - x[1][0]]

    def residual_well(self, cell, x, ctx):
        p = x[0][0]
        if self.controls.mode is BoundaryMode.BHP:
            return [p - self.controls.pwf]

        p_prev = ctx.state.previous[cell.id, 0]
        H = self.mass(p) - self.mass(p_prev)
        sink = self.fluid.density(p) * self.well_rate()
        for k, face, nebr in self.faces(cell):
            sink += self.flux(cell, face, nebr, p, x[k][0], ctx)
        return [H + ctx.ht / cell.volume * sink]

    def link_rates(self, state):
        """
        Volumetric rate into the well through each link. Call after a
        commit, when the iterate layer holds the converged solution.
        """
        well = self.mesh.well_cell
        p = state.iterate[:, 0]
        ctx = StepContext(0.0, state)
        rates = []
        for _, face, nebr in self.faces(well):
            F = self.flux(nebr, face, well, p[nebr.id], p[well.id], ctx)
            rates.append(F / self.fluid.density(p[nebr.id] if F >= 0 else p[well.id]))
        return np.array(rates)
