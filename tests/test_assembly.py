import numpy as np
import pytest

from fraccore.errors import LinearSolveError
from fracfvm import (
    GlobalAssembler, LocalAssembler, LocalBlock, LinearSolver, OilModel, StateStore,
    StepContext, TimeStepController, Period, WellControls, BoundaryMode,
)


class _Cell:
    def __init__(self, cid):
        self.id = cid


class _StencilMesh:
    """Two cells; cell 0 lists cell 1 twice in its stencil."""
    def __init__(self):
        self.cells = [_Cell(0), _Cell(1)]
        self._stencils = {0: [0, 1, 1], 1: [1, 0]}

    def stencil(self, cell):
        return self._stencils[cell.id]


def test_duplicate_stencil_entries_are_summed():
    glob = GlobalAssembler(_StencilMesh(), 1)
    assert glob.nnz == 4

    blocks = [
        LocalBlock(1, (1, 0), np.array([2.0]), np.array([[5.0, 6.0]])),
        LocalBlock(0, (0, 1, 1), np.array([1.0]), np.array([[2.0, 3.0, 4.0]])),
    ]
    system = glob.assemble(blocks)
    np.testing.assert_array_equal(system.rhs, [-1.0, -2.0])

    keys = list(zip(system.rows.tolist(), system.cols.tolist()))
    assert len(set(keys)) == len(keys)

    dense = LinearSolver().assemble(system).toarray()
    np.testing.assert_array_equal(dense, [[2.0, 7.0], [6.0, 5.0]])


def test_assembly_needs_every_block():
    glob = GlobalAssembler(_StencilMesh(), 1)
    with pytest.raises(ValueError):
        glob.assemble([LocalBlock(0, (0, 1, 1), np.zeros(1), np.zeros((1, 3)))])


def test_pattern_of_a_two_variable_mesh(triangle_mesh):
    glob = GlobalAssembler(triangle_mesh, 2)
    # Triangle row block: 2 rows x 4 cells x 2 vars; each border: 2 rows x 2 cells x 2 vars
    assert glob.nnz == 16 + 3 * 8
    assert glob.size == 8


def _oil_setup(mesh, workers=1):
    model = OilModel()
    model.load_mesh(mesh)
    state = StateStore(len(mesh), 1)
    model.set_initial_state(state)
    rng = np.random.default_rng(0)
    state.next[:, 0] += 0.05 * rng.random(len(mesh))
    state.begin_iteration()
    ctl = TimeStepController([Period(1.0, rate=0.1)], links=mesh.well_links)
    model.set_period(ctl.controls)
    return model, state, LocalAssembler(mesh, model, workers=workers)


def test_threaded_local_assembly_matches_serial(square_mesh):
    model, state, serial = _oil_setup(square_mesh)
    threaded = LocalAssembler(square_mesh, model, workers=4)
    ctx = StepContext(0.01, state)
    try:
        for a, b in zip(serial.assemble(ctx), threaded.assemble(ctx)):
            assert a.cell_id == b.cell_id
            np.testing.assert_array_equal(a.residual, b.residual)
            np.testing.assert_array_equal(a.jacobian, b.jacobian)
    finally:
        threaded.close()


def test_local_jacobian_matches_finite_differences(square_mesh):
    model, state, local = _oil_setup(square_mesh)
    ctx = StepContext(0.01, state)
    cell = square_mesh.well_cell
    block = local.evaluate(cell, ctx)
    assert block.jacobian.shape == (1, len(block.stencil))

    eps = 1e-7
    base = state.next.copy()
    for k, cid in enumerate(block.stencil):
        state.next[:] = base
        state.next[cid, 0] += eps
        bumped = local.evaluate(cell, ctx)
        fd = (bumped.residual[0] - block.residual[0]) / eps
        # Duplicate stencil entries each carry a share of the total derivative
        share = block.jacobian[0, [i for i, c in enumerate(block.stencil) if c == cid]].sum()
        assert fd == pytest.approx(share, rel=1e-4, abs=1e-6)
    state.next[:] = base


def _system(matrix):
    from fracfvm.assembly import SparseSystem
    m = np.asarray(matrix, dtype=float)
    rows, cols = np.nonzero(m)
    return SparseSystem(rows, cols, m[rows, cols], -np.ones(len(m)), m.shape)


@pytest.mark.parametrize("name", ["ilu", "jacobi", "direct"])
def test_linear_solver_preconditioners(name):
    A = np.array([[4.0, -1.0, 0.0], [-1.0, 4.0, -1.0], [0.0, -1.0, 4.0]])
    solver = LinearSolver()
    solver.assemble(_system(A))
    x = solver.solve(name)
    np.testing.assert_allclose(A @ x, -np.ones(3), atol=1e-8)


def test_singular_system_raises():
    solver = LinearSolver()
    solver.assemble(_system([[1.0, 1.0], [1.0, 1.0]]))
    with pytest.raises(LinearSolveError) as info:
        solver.solve("direct")
    assert info.value.preconditioner == "direct"


def test_zero_diagonal_fails_jacobi():
    solver = LinearSolver()
    solver.assemble(_system([[0.0, 1.0], [1.0, 0.0]]))
    with pytest.raises(LinearSolveError):
        solver.solve("jacobi")
    np.testing.assert_allclose(solver.solve("direct"), [-1.0, -1.0])


def test_unknown_preconditioner():
    solver = LinearSolver()
    solver.assemble(_system([[1.0]]))
    with pytest.raises(LinearSolveError):
        solver.solve("amg")


def test_worker_pool_is_reused_until_closed(square_mesh):
    model, state, local = _oil_setup(square_mesh, workers=2)
    ctx = StepContext(0.01, state)
    local.assemble(ctx)
    pool = local._pool
    assert pool is not None
    local.assemble(ctx)
    assert local._pool is pool
    local.close()
    assert local._pool is None
    assert len(local.assemble(ctx)) == len(square_mesh)
    local.close()


def test_serial_assembly_starts_no_pool(square_mesh):
    _, state, local = _oil_setup(square_mesh)
    local.assemble(StepContext(0.01, state))
    assert local._pool is None


@pytest.mark.parametrize("rates", [(0.3, 0.1, 0.0, 0.0), (0.1, 0.1, 0.1, 0.1)])
def test_well_sink_uses_the_per_link_split(square_mesh, rates):
    model = OilModel()
    model.load_mesh(square_mesh)
    state = StateStore(len(square_mesh), 1)
    model.set_initial_state(state)
    # q_sum disagrees with the split on purpose: the shares win
    model.set_period(WellControls(BoundaryMode.RATE, 1.0, None, rates))

    well = square_mesh.well_cell
    ht = 0.01
    block = LocalAssembler(square_mesh, model).evaluate(well, StepContext(ht, state))
    # Uniform pressure: no storage change and no link flux, only the sink
    assert block.residual[0] == pytest.approx(ht / well.volume * sum(rates))
