"""
fracfvm/physics/base.py
-----------------------
The Abstract Base Class for flow models.
Defines the interface the assembler and the Newton driver rely on, plus
the two-point flux numerics shared by every model.
"""
from abc import ABC, abstractmethod

import attrs

from fraccore.errors import ConfigurationError
from fracmesh.elements import CellType, BorderCell, WellAggregate
from ..ad import value
from .properties import Skeleton

# Gravity acceleration in model units
GRAVITY = 0.0


@attrs.frozen
class StepContext:
    """What a residual may read besides its own local unknowns."""

    ht: float
    state: object
    """StateStore; read only during assembly."""


class FlowModel(ABC):
    """
    A residual row block per cell.

    `x` handed to the residual methods is a list of blocks, one per entry of
    mesh.stencil(cell), each block a list of num_variables Duals.
    """
    def __init__(self):
        self.mesh = None
        self.controls = None
        self.skeleton = Skeleton()
        self.border_pressure = True
        self.gravity = GRAVITY

    @property
    @abstractmethod
    def num_variables(self):
        pass

    @property
    @abstractmethod
    def variable_names(self):
        pass

    @property
    @abstractmethod
    def bounds(self):
        """ (lo, hi) per variable. """
        pass

    def load_mesh(self, mesh):
        self.mesh = mesh
        mesh.assign_depth(self.skeleton.depth, self.skeleton.dip)

    def set_properties(self, **props):
        """
        Replaces model properties by keyword (skeleton=..., fluid=...,
        border_pressure=..., gravity=...).
        """
        for key, val in props.items():
            if key in ("mesh", "controls") or key not in vars(self):
                raise ConfigurationError(f"{type(self).__name__} has no property '{key}'.")
            setattr(self, key, val)
        if self.mesh is not None:
            self.mesh.assign_depth(self.skeleton.depth, self.skeleton.dip)

    @abstractmethod
    def set_initial_state(self, state):
        pass

    def set_period(self, controls):
        self.controls = controls

    def well_rate(self):
        """ Total RATE-mode well rate: the sum of the per-link shares. """
        if self.controls.rates:
            return sum(self.controls.rates)
        return self.controls.q_sum

    # --- Residual dispatch ---
    def build_residual(self, cell, x, ctx):
        if isinstance(cell, WellAggregate):
            return self.residual_well(cell, x, ctx)
        if isinstance(cell, BorderCell):
            return self.residual_border(cell, x, ctx)
        if cell.type is CellType.WELL:
            return self.residual_absorbed(cell, x, ctx)
        return self.residual_regular(cell, x, ctx)

    @abstractmethod
    def residual_regular(self, cell, x, ctx):
        pass

    @abstractmethod
    def residual_border(self, cell, x, ctx):
        pass

    @abstractmethod
    def residual_absorbed(self, cell, x, ctx):
        pass

    @abstractmethod
    def residual_well(self, cell, x, ctx):
        pass

    # --- Shared numerics ---
    def faces(self, cell):
        """
        Yields (k, face, nebr) for every flux connection of a balance cell:
        k is the stencil position of the neighbor block, face the face index
        on the regular cell that owns the shared face.
        """
        cells = self.mesh.cells
        if isinstance(cell, WellAggregate):
            for k, link in enumerate(cell.links, start=1):
                yield k, link.face, cells[link.cell_id]
        else:
            for i, nebr_id in enumerate(cell.neighbors):
                yield i + 1, i, cells[nebr_id]

    def permeability(self, cell):
        if cell.type in (CellType.INTERIOR, CellType.BORDER):
            return self.skeleton.perm
        return self.skeleton.perm * self.skeleton.frac_perm_factor

    def transmissibility(self, cell, face, nebr):
        """ Harmonic two-point transmissibility across one face. """
        k1 = self.permeability(cell)
        k2 = self.permeability(nebr)
        if isinstance(cell, WellAggregate):
            # face indexes the neighbor's slots here
            link = cell.link(nebr.id, face)
            length, d1 = link.face_length, link.distance
            d2 = nebr.dists[face]
        else:
            length, d1 = cell.lengths[face], cell.dists[face]
            d2 = nebr.distance_to(cell.id, face)
        return self.skeleton.height * length * k1 * k2 / (k1 * d2 + k2 * d1)

    def potential(self, cell, p, fluid):
        """ Phase potential p - rho g z. """
        if self.gravity == 0.0:
            return p
        return p - fluid.density(p) * self.gravity * cell.depth

    def upwind(self, a, b, fluid, ctx):
        """
        0 when flow goes from a to b (a is upstream), 1 otherwise.
        Decided on the iterate layer; ties go to a.
        """
        it = ctx.state.iterate
        phi_a = self.potential(a, it[a.id, 0], fluid)
        phi_b = self.potential(b, it[b.id, 0], fluid)
        return 0 if value(phi_a) >= value(phi_b) else 1

    def __repr__(self):
        return f"{type(self).__name__}(vars={list(self.variable_names)})"
