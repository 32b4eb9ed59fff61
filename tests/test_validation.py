import numpy as np
import pytest

from alignseg.core.alignment import ScoringParameters, ORIGINAL_DEFAULT
from alignseg.core.exceptions import AlignSegError, InvalidParameterError
from alignseg.diagnostics import validation
from alignseg.diagnostics.validation import (
    BYTES_PER_CELL,
    check_matrix_size,
    estimate_matrix_bytes,
    validate_configuration,
    validate_kernel_variance,
    validate_scoring_parameters,
    validate_segmentation_parameters,
)


class FakeMemory:
    def __init__(self, available):
        self.available = available


def test_scoring_parameters_accepted():
    assert validate_scoring_parameters(ORIGINAL_DEFAULT) is ORIGINAL_DEFAULT


@pytest.mark.parametrize("parameters", [
    ScoringParameters(3.0, -1, -4, -3),
    ScoringParameters(3, -1, -4, True),
    (3, -1, -4, -3),
])
def test_scoring_parameters_rejected(parameters):
    with pytest.raises(InvalidParameterError):
        validate_scoring_parameters(parameters)


def test_matrix_bytes():
    assert estimate_matrix_bytes(9, 4) == 10 * 5 * BYTES_PER_CELL


def test_small_matrix_passes_without_memory_check(monkeypatch):
    def fail():
        raise AssertionError("memory should not be queried")
    monkeypatch.setattr(validation.psutil, "virtual_memory", fail)
    assert check_matrix_size(9, 4) == 50


def test_large_matrix_warns(monkeypatch, caplog):
    monkeypatch.setattr(validation.psutil, "virtual_memory", lambda: FakeMemory(10 ** 12))
    with caplog.at_level("WARNING", logger="alignseg.diagnostics.validation"):
        assert check_matrix_size(99, 99, max_cells=100) == 10_000
    assert "Alignment matrix" in caplog.text


def test_matrix_larger_than_memory_rejected(monkeypatch):
    monkeypatch.setattr(validation.psutil, "virtual_memory", lambda: FakeMemory(1000))
    with pytest.raises(InvalidParameterError) as excinfo:
        check_matrix_size(99, 99, max_cells=100)
    assert excinfo.value.details['required_bytes'] == 10_000 * BYTES_PER_CELL


def test_segmentation_parameters_accepted():
    validate_segmentation_parameters(0, 1, [], 0., 0.)
    validate_segmentation_parameters(25, 100, [8, 16, 32], 1., 5.)


@pytest.mark.parametrize("args", [
    (-1, 100, [8], 1., 1.),
    (25, 0, [8], 1., 1.),
    (25, 100, [-8], 1., 1.),
    (25, 100, [8, 16, 8], 1., 1.),
    (25, 100, [8.0], 1., 1.),
    (25.0, 100, [8], 1., 1.),
    (25, 100, [8], 0.99, 1.),
    (25, 100, [8], 1., 0.5),
])
def test_segmentation_parameters_rejected(args):
    with pytest.raises(InvalidParameterError):
        validate_segmentation_parameters(*args)


def test_kernel_variance():
    validate_kernel_variance(0.)
    validate_kernel_variance(3.)
    with pytest.raises(InvalidParameterError):
        validate_kernel_variance(-0.1)


def test_errors_share_base_class():
    with pytest.raises(AlignSegError):
        validate_kernel_variance(-1.)
    with pytest.raises(ValueError):
        validate_kernel_variance(-1.)


def test_configuration_missing_sections():
    is_valid, errors = validate_configuration({})
    assert not is_valid
    assert "Missing configuration section: alignment" in errors
    assert "Missing configuration section: segmentation" in errors


def test_configuration_bad_types():
    is_valid, errors = validate_configuration({
        'alignment': {'scoring': 7, 'max_matrix_cells': 0},
        'segmentation': 'none',
    })
    assert not is_valid
    assert len(errors) == 3


def test_float_window_sizes_from_config_reported():
    is_valid, errors = validate_configuration({
        'alignment': {},
        'segmentation': {'window_sizes': [8.0, 16.0]},
    })
    assert not is_valid
    assert errors == ["Window sizes must all be integers."]


def test_numpy_integers_accepted():
    validate_segmentation_parameters(np.int64(5), np.int32(10), list(np.array([8, 16])), 1., 1.)
