"""Tests for the LNAPath and LNAPathBundle containers."""

import numpy as np
import pytest

from lna.path_history import LNAPath


@pytest.fixture
def path():
    lna_path = np.array([
        [0.0, 0.0, 0.0],
        [1.0, 4.0, 1.0],
        [2.0, 12.0, 5.0],
    ])
    return LNAPath(draws=np.zeros((2, 2)), lna_path=lna_path)


def test_to_frame(path):
    frame = path.to_frame(['S2I', 'I2R'])

    assert list(frame.columns) == ['time', 'S2I', 'I2R']
    assert frame.shape == (3, 3)
    assert frame['S2I'].iloc[-1] == 12.0


def test_to_frame_default_names(path):
    assert list(path.to_frame().columns) == ['time', 'event_0', 'event_1']
    with pytest.raises(ValueError):
        path.to_frame(['S2I'])


def test_compartment_volumes_clamped(path):
    stoich = np.array([[-1.0, 0.0], [1.0, -1.0], [0.0, 1.0]])

    volumes = path.compartment_volumes([10.0, 1.0, 0.0], stoich)

    np.testing.assert_array_equal(volumes, [
        [10.0, 1.0, 0.0],
        [6.0, 4.0, 1.0],
        [0.0, 8.0, 5.0],
    ])


def test_processes_required(path):
    assert not path.has_processes
    with pytest.raises(ValueError, match="record_processes"):
        path.log_density()
    with pytest.raises(ValueError, match="record_processes"):
        path.to_bundle()


def test_to_bundle_layout():
    times = np.array([0.0, 1.0, 2.0])
    drift = np.array([[0.0, 0.0], [0.3, 0.1], [0.2, 0.4]])
    diffusion = np.zeros((3, 2, 2))
    diffusion[1:] = np.eye(2)
    log_increments = np.array([[0.0, 0.0], [0.5, -0.1], [0.1, 0.6]])
    path = LNAPath(
        draws=np.zeros((2, 2)),
        lna_path=np.column_stack([times, np.zeros((3, 2))]),
        drift=drift,
        diffusion=diffusion,
        log_increments=log_increments,
    )

    bundle = path.to_bundle(data_log_lik=-3.0)

    np.testing.assert_array_equal(bundle.res_path[:, 0], times)
    np.testing.assert_array_equal(bundle.res_path[:, 1:], log_increments)
    np.testing.assert_array_equal(bundle.residual, np.zeros((3, 2)))
    np.testing.assert_array_equal(bundle.drift, drift)
    assert bundle.drift is not path.drift
    assert bundle.data_log_lik == -3.0
    assert bundle.lna_log_lik is None

    expected = -np.log(2 * np.pi) - 0.5 * (0.2 ** 2 + 0.2 ** 2) - np.log(2 * np.pi) - 0.5 * (0.1 ** 2 + 0.2 ** 2)
    assert path.log_density() == pytest.approx(expected)
