"""
fracfvm/physics/properties.py
-----------------------------
Rock, fluid and relative-permeability correlations.

All quantities are non-dimensional. Every method accepts a float or a
Dual, so the same correlation serves the residual and its Jacobian.
"""
import attrs

from ..ad import clip


@attrs.frozen
class Skeleton:
    """Rock properties of the formation."""

    perm: float = attrs.field(default=1.0, validator=attrs.validators.gt(0.0))
    """Matrix permeability."""
    m0: float = attrs.field(default=0.2, validator=attrs.validators.gt(0.0))
    """Porosity at the reference pressure."""
    beta: float = 1e-3
    """Pore compressibility."""
    p_ref: float = 1.0
    height: float = attrs.field(default=1.0, validator=attrs.validators.gt(0.0))
    frac_perm_factor: float = attrs.field(default=1000.0, validator=attrs.validators.gt(0.0))
    """Permeability multiplier for fracture and well cells."""
    p_init: float = 1.0
    p_out: float = 1.0
    """Outer boundary pressure (Dirichlet borders)."""
    sw_init: float = 0.2
    sw_out: float = 0.2
    depth: float = 0.0
    """Reference depth of y = 0."""
    dip: float = 0.0
    """Dip angle along y, in degrees."""

    def porosity(self, p):
        return self.m0 * (1.0 + self.beta * (p - self.p_ref))


@attrs.frozen
class Fluid:
    """Slightly compressible liquid with constant viscosity."""

    rho_stc: float = attrs.field(default=1.0, validator=attrs.validators.gt(0.0))
    beta: float = 1e-3
    p_ref: float = 1.0
    visc: float = attrs.field(default=1.0, validator=attrs.validators.gt(0.0))

    def density(self, p):
        return self.rho_stc * (1.0 + self.beta * (p - self.p_ref))

    def viscosity(self, p):
        return self.visc

    def mobility(self, p, kr=1.0):
        """ kr * rho / mu """
        return kr * self.density(p) / self.viscosity(p)


@attrs.frozen
class CoreyRelPerm:
    """Two-phase Corey curves for a water/oil system."""

    s_wc: float = attrs.field(default=0.1, validator=attrs.validators.ge(0.0))
    """Connate water saturation."""
    s_or: float = attrs.field(default=0.1, validator=attrs.validators.ge(0.0))
    """Residual oil saturation."""
    n_w: float = 2.0
    n_o: float = 2.0
    krw_max: float = 1.0
    kro_max: float = 1.0

    def __attrs_post_init__(self):
        if self.s_wc + self.s_or >= 1.0:
            raise ValueError("s_wc + s_or must be below 1.")

    def relative_permeability(self, sw, so):
        """
        Returns:
            (krw, kro)
        """
        span = 1.0 - self.s_wc - self.s_or
        swn = clip((sw - self.s_wc) / span, 0.0, 1.0)
        son = clip((so - self.s_or) / span, 0.0, 1.0)
        return self.krw_max * swn ** self.n_w, self.kro_max * son ** self.n_o
