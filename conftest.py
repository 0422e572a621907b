import numpy as np
import pytest

import dataio
from demgrid import Grid


@pytest.fixture(autouse=True)
def quiet_diagnostics(monkeypatch):
    monkeypatch.setattr(dataio, 'VERBOSE', False)


@pytest.fixture
def small_dem():
    '''2x2 integer grid from the ArcGrid example, one no-data cell.'''
    return Grid.from_array(
        np.array([[10, -9999], [20, 30]], dtype=np.int32),
        no_data=-9999, xllcorner=500000.0, yllcorner=6100000.0, cellsize=30)


@pytest.fixture
def float_dem():
    data = np.array([
        [1.5, 2.25, -9999.0, 4.125],
        [0.1, -3.75, 7.0, 1e-3],
        [-9999.0, -9999.0, 12.5, 100.0],
    ], dtype=np.float32)
    return Grid.from_array(data, no_data=-9999, xllcorner=12.5,
                           yllcorner=-7.25, cellsize=0.5)
