import numpy as np
import pandas as pd
import pytest

from hymani.algorithms.manifold import (Curve, GapRecord, Generation,
                                        ManifoldConfig, Saddle, seed_1d)
from hymani.algorithms.utils.exceptions import (IntegrationFailure,
                                                LocalRefinementStall)
from hymani.system import InvariantManifold


@pytest.fixture
def saddle():
    return Saddle(position=[0.0, 0.0], directions=([1.0, 0.0],), rates=(2.0,), kind="unstable")


def _arc(index, n=5, scale=1.0, **kwargs):
    x = np.linspace(0.0, scale, n)
    return Generation(index=index, curves=(Curve.from_points(np.column_stack([x, x**2])),), **kwargs)


def _rings(index, radii=(0.5, 1.0), n=12):
    theta = np.linspace(0.0, 2.0 * np.pi, n, endpoint=False)
    curves = tuple(
        Curve.from_points(np.column_stack([r * np.cos(theta), r * np.sin(theta)]), closed=True)
        for r in radii
    )
    return Generation(index=index, curves=curves)


@pytest.fixture
def manifold(saddle):
    gap = GapRecord.from_exception(
        IntegrationFailure("lost"), generation=1, ring=0, param=0.5, point=[0.25, 0.1],
    )
    stall = LocalRefinementStall("segment too short to split", generation=2, ring=0,
                                 interval=(0.1, 0.2), chord=3e-6)
    gens = [
        _arc(0, scale=0.2),
        _arc(1, scale=0.4, gaps=(gap,)),
        _arc(2, n=9, scale=0.8, stalls=(stall,)),
    ]
    return InvariantManifold(gens, saddle=saddle, config=ManifoldConfig(d=0.2, interpolation="pchip"))


def test_append_rules():
    m = InvariantManifold()
    assert len(m) == 0
    assert m.dim == 0

    m.append(_arc(0))
    with pytest.raises(ValueError):
        m.append(_arc(2))
    with pytest.raises(ValueError):
        m.append(_rings(1))
    with pytest.raises(TypeError):
        m.append("generation")

    three_d = Generation(index=1, curves=(Curve.from_points(np.zeros((3, 3)) + np.arange(3)[:, None]),))
    with pytest.raises(ValueError):
        m.append(three_d)

    m.append(_arc(1))
    assert len(m) == 2


def test_queries(manifold, saddle):
    assert len(manifold) == 3
    assert [g.index for g in manifold] == [0, 1, 2]
    assert manifold[-1].index == 2
    with pytest.raises(IndexError):
        manifold[3]

    assert manifold.dim == 2
    assert not manifold.is_surface
    assert manifold.saddle is saddle
    assert manifold.points(2).shape == (9, 2)
    assert len(manifold.rings(1)) == 1
    assert len(manifold.gaps) == 1 and manifold.gaps[0].generation == 1
    assert len(manifold.stalls) == 1 and manifold.stalls[0].generation == 2

    x = np.linspace(0.0, 0.8, 9)
    expected = np.sum(np.hypot(np.diff(x), np.diff(x**2)))
    assert manifold.arc_length(2) == pytest.approx(expected)


def test_points_are_read_only(manifold):
    with pytest.raises(ValueError):
        manifold.points(0)[0, 0] = 1.0


def test_interpolant_uses_configured_scheme(manifold):
    interp = manifold.interpolant(1)
    assert interp.scheme == "pchip"
    assert manifold.interpolant(1) is interp
    assert manifold.interpolant(-2) is interp
    assert manifold.interpolant(1, scheme="linear").scheme == "linear"

    curve = manifold.curve(1)
    assert np.allclose(interp(curve.params), curve.points)
    assert np.allclose(interp(0.0), [0.0, 0.0])
    assert np.allclose(interp(1.0), [0.4, 0.16])


def test_surface_queries():
    m = InvariantManifold([_rings(0)])
    assert m.is_surface
    assert len(m.rings(0)) == 2
    # outermost ring by default
    outer = m.arc_length(0)
    inner = m.arc_length(0, ring=0)
    assert outer == pytest.approx(2.0 * inner)
    assert m.interpolant(0, ring=1).closed


def test_to_df(manifold):
    df = manifold.to_df()

    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ["generation", "ring", "index", "param", "x0", "x1"]
    assert len(df) == 5 + 5 + 9
    last = df[df["generation"] == 2]
    assert np.allclose(last[["x0", "x1"]].to_numpy(), manifold.points(2))
    assert last["index"].tolist() == list(range(9))


def test_to_csv(manifold, tmp_path):
    path = tmp_path / "out" / "manifold.csv"
    manifold.to_csv(path)
    df = pd.read_csv(path)
    assert len(df) == 19
    assert df["x1"].iloc[-1] == pytest.approx(0.64)


def test_hdf5_round_trip(manifold, tmp_path):
    path = tmp_path / "nested" / "manifold.h5"
    manifold.save(path)
    loaded = InvariantManifold.load(path)

    assert len(loaded) == len(manifold)
    for k in range(len(manifold)):
        assert np.array_equal(loaded.points(k), manifold.points(k))
        assert np.array_equal(loaded.curve(k).params, manifold.curve(k).params)

    assert loaded.config == manifold.config
    assert loaded.saddle.kind == "unstable"
    assert np.array_equal(loaded.saddle.position, manifold.saddle.position)
    assert loaded.saddle.rates == manifold.saddle.rates

    gap = loaded.gaps[0]
    assert (gap.generation, gap.ring, gap.param) == (1, 0, 0.5)
    assert gap.error == "IntegrationFailure"
    assert gap.reason == "lost"
    assert np.array_equal(gap.point, [0.25, 0.1])

    stall = loaded.stalls[0]
    assert str(stall) == "segment too short to split"
    assert stall.interval == (0.1, 0.2)
    assert stall.chord == 3e-6


def test_hdf5_round_trip_surface(tmp_path):
    m = InvariantManifold([_rings(0)], terminated_early=True)
    path = tmp_path / "rings.h5"
    m.save(path)
    loaded = InvariantManifold.load(path)

    assert loaded.is_surface
    assert loaded.terminated_early
    assert loaded.config is None and loaded.saddle is None
    assert all(c.closed for c in loaded[0].curves)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        InvariantManifold.load(tmp_path / "missing.h5")


def test_unknown_keywords_are_rejected(manifold, tmp_path):
    path = tmp_path / "m.h5"
    manifold.save(path)
    with pytest.raises(TypeError):
        InvariantManifold.load(path, mode="r")
    with pytest.raises(TypeError):
        manifold.to_df(decimals=3)


def test_grown_manifold_round_trip(saddle, tmp_path):
    from hymani.algorithms.manifold import grow_manifold
    from hymani.algorithms.maps import SmoothMap

    cfg = ManifoldConfig(d=0.05, n_workers=1)
    smap = SmoothMap(lambda x, p: np.array([2.0 * x[0], 0.5 * x[1] + x[0] ** 2]))
    grown = grow_manifold(smap, saddle, 3, config=cfg, seed=seed_1d(saddle, 0.025, 5))
    path = tmp_path / "grown.h5"
    grown.save(path)

    loaded = InvariantManifold.load(path)
    assert loaded.config == cfg
    assert np.allclose(loaded.points(3), grown.points(3))
    assert str(loaded) == str(grown)
