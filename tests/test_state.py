import numpy as np

from fracfvm import StateStore


def test_layers_follow_the_newton_protocol():
    st = StateStore(3, 2)
    st.fill([0, 1, 2], [1.0, 0.5])
    for layer in (st.previous, st.iterate, st.next):
        np.testing.assert_array_equal(layer, [[1.0, 0.5]] * 3)

    st.apply_increment(np.full(6, 0.1), [(0.0, np.inf), (0.0, 1.0)])
    np.testing.assert_allclose(st.next[:, 0], 1.1)
    np.testing.assert_allclose(st.iterate[:, 0], 1.0)

    st.begin_iteration()
    np.testing.assert_allclose(st.iterate, st.next)
    np.testing.assert_allclose(st.previous[:, 0], 1.0)

    st.rollback()
    np.testing.assert_allclose(st.next[:, 0], 1.0)
    np.testing.assert_allclose(st.iterate[:, 0], 1.0)

    st.apply_increment(np.full(6, 0.2), [(0.0, np.inf), (0.0, 1.0)])
    st.commit()
    np.testing.assert_allclose(st.previous[:, 0], 1.2)
    np.testing.assert_allclose(st.iterate[:, 0], 1.2)


def test_increment_is_damped_and_clamped():
    st = StateStore(3, 2)
    st.fill([0, 1, 2], [1.0, 0.5])
    dx = np.array([0.0, 0.0, -4.0, 0.0, 0.0, 2.0])
    clamped = st.apply_increment(dx, [(0.0, np.inf), (0.0, 1.0)], damping=0.5)
    assert clamped == [1, 2]
    np.testing.assert_allclose(st.next, [[1.0, 0.5], [0.0, 0.5], [1.0, 1.0]])


def test_unclamped_increment_reports_nothing():
    st = StateStore(2, 1)
    st.fill([0, 1], [1.0])
    assert st.apply_increment(np.array([0.1, -0.1]), [(0.0, np.inf)]) == []


def test_average_and_export(triangle_mesh):
    st = StateStore(len(triangle_mesh), 1)
    st.fill([0, 1, 2, 3], [[1.0], [2.0], [3.0], [4.0]])
    assert st.average(0) == 2.5
    assert st.average(0, [0, 1]) == 1.5

    snaps = list(st.export(triangle_mesh))
    assert [s.id for s in snaps] == [0, 1, 2, 3]
    assert snaps[0].type == "INTERIOR"
    assert snaps[1].type == "BORDER"
    assert snaps[3].values == (4.0,)
    assert snaps[0].volume == 0.5
