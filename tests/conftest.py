import numpy as np
import pytest


@pytest.fixture
def step_data():
    """1000 points in ten blocks of 100 with levels 5, 4, 3, 2, 1, 0, 1, 2, 3, 4 plus noise."""
    rng = np.random.default_rng(1)
    levels = np.abs(np.arange(1000) // 100 - 5).astype(float)
    return levels + 0.1 * rng.standard_normal(1000)


@pytest.fixture
def contig_data():
    """Four 250-point contigs with two level changes each."""
    rng = np.random.default_rng(2)

    def noisy(levels):
        return (np.asarray(levels, dtype=float) + 0.1 * rng.standard_normal(len(levels))).tolist()

    return {
        "1": noisy([0.] * 100 + [1.] * 100 + [0.] * 50),
        "2": noisy([1.] * 50 + [0.] * 100 + [1.] * 100),
        "3": noisy([2.] * 100 + [3.] * 100 + [2.] * 50),
        "4": noisy([3.] * 50 + [2.] * 100 + [3.] * 100),
    }
