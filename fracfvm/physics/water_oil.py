"""
fracfvm/physics/water_oil.py
----------------------------
Two-phase water/oil flow. Unknowns per cell: pressure and water saturation.
Row 0 is the oil balance, row 1 the water balance. Each phase is upwinded
on its own potential.
"""
import numpy as np

from .base import FlowModel, StepContext
from .properties import Fluid, CoreyRelPerm
from ..ad import value
from ..timestep import BoundaryMode


class WaterOilModel(FlowModel):
    def __init__(self):
        super().__init__()
        self.oil = Fluid()
        self.water = Fluid(rho_stc=1.0, visc=0.5)
        self.relperm = CoreyRelPerm()

    @property
    def num_variables(self):
        return 2

    @property
    def variable_names(self):
        return ("p", "sw")

    @property
    def bounds(self):
        return [(0.0, np.inf), (0.0, 1.0)]

    def set_initial_state(self, state):
        sk = self.skeleton
        state.fill(np.arange(state.n_cells), [sk.p_init, sk.sw_init])

    def masses(self, p, sw):
        phi = self.skeleton.porosity(p)
        return phi * self.oil.density(p) * (1.0 - sw), phi * self.water.density(p) * sw

    def mobilities(self, p, sw):
        krw, kro = self.relperm.relative_permeability(sw, 1.0 - sw)
        return self.oil.mobility(p, kro), self.water.mobility(p, krw)

    def fluxes(self, cell, face, nebr, u_self, u_nebr, ctx):
        """ (oil, water) mass fluxes leaving `cell` across one face. """
        T = self.transmissibility(cell, face, nebr)
        out = []
        for phase, fluid in enumerate((self.oil, self.water)):
            up = u_self if self.upwind(cell, nebr, fluid, ctx) == 0 else u_nebr
            lam = self.mobilities(up[0], up[1])[phase]
            dphi = self.potential(cell, u_self[0], fluid) - self.potential(nebr, u_nebr[0], fluid)
            out.append(T * lam * dphi)
        return out

    def residual_regular(self, cell, x, ctx):
        p, sw = x[0]
        prev = ctx.state.previous[cell.id]
        mo, mw = self.masses(p, sw)
        mo_prev, mw_prev = self.masses(prev[0], prev[1])
        Ho = mo - mo_prev
        Hw = mw - mw_prev
        for k, face, nebr in self.faces(cell):
            Fo, Fw = self.fluxes(cell, face, nebr, x[0], x[k], ctx)
            Ho += ctx.ht / cell.volume * Fo
            Hw += ctx.ht / cell.volume * Fw
        return [Ho, Hw]

    def residual_border(self, cell, x, ctx):
        p, sw = x[0]
        if self.border_pressure:
            return [p - self.skeleton.p_out, sw - self.skeleton.sw_out]
        return [p - x[1][0], sw - x[1][1]]

    def residual_absorbed(self, cell, x, ctx):
        return [x[0][0] - x[1][0], x[0][1] - x[1][1]]

    def fractional_flow(self, p, sw, rate):
        """ Water cut of the well stream; injection (rate < 0) is pure water. """
        if value(rate) < 0.0:
            return 1.0
        lo, lw = self.mobilities(p, sw)
        return lw / (lw + lo)

    def residual_well(self, cell, x, ctx):
        p, sw = x[0]
        prev = ctx.state.previous[cell.id]
        mo, mw = self.masses(p, sw)
        mo_prev, mw_prev = self.masses(prev[0], prev[1])

        Fo_sum, Fw_sum = 0.0, 0.0
        for k, face, nebr in self.faces(cell):
            Fo, Fw = self.fluxes(cell, face, nebr, x[0], x[k], ctx)
            Fo_sum += Fo
            Fw_sum += Fw

        scale = ctx.ht / cell.volume
        if self.controls.mode is BoundaryMode.BHP:
            # Net volumetric inflow through the links leaves through the well
            q_tot = -(Fo_sum / self.oil.density(p) + Fw_sum / self.water.density(p))
            fw = self.fractional_flow(p, sw, q_tot)
            Hw = mw - mw_prev + scale * (Fw_sum + self.water.density(p) * fw * q_tot)
            return [p - self.controls.pwf, Hw]

        q = self.well_rate()
        fw = self.fractional_flow(p, sw, q)
        Ho = mo - mo_prev + scale * (Fo_sum + self.oil.density(p) * (1.0 - fw) * q)
        Hw = mw - mw_prev + scale * (Fw_sum + self.water.density(p) * fw * q)
        return [Ho, Hw]

    def link_rates(self, state):
        """
        Total volumetric rate into the well through each link. Call after a
        commit, when the iterate layer holds the converged solution.
        """
        well = self.mesh.well_cell
        u = state.iterate
        ctx = StepContext(0.0, state)
        rates = []
        for _, face, nebr in self.faces(well):
            Fo, Fw = self.fluxes(nebr, face, well, u[nebr.id], u[well.id], ctx)
            p = u[nebr.id, 0]
            rates.append(Fo / self.oil.density(p) + Fw / self.water.density(p))
        return np.array(rates)
