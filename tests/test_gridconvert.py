import numpy as np
import pytest

import gridconvert
from dataio import write_ascii_data, read_floating_data
from demgrid import Grid, dummy_progress


def test_ascii_to_floating(tmp_path, small_dem, capsys):
    src = tmp_path / 'dem.asc'
    write_ascii_data(src, small_dem, pi=dummy_progress)
    assert gridconvert.main(
        [str(src), str(tmp_path / 'out.flt'), '--dtype', 'int32', '-q']) == 0
    grid = read_floating_data(tmp_path / 'out', Grid(dtype=np.int32),
                              pi=dummy_progress)
    assert grid.data.tolist() == [[10, -9999], [20, 30]]
    assert grid.data_cells == 3
    assert capsys.readouterr().out == ''


def test_floating_to_omniglyph(tmp_path, float_dem):
    src = tmp_path / 'dem.asc'
    write_ascii_data(src, float_dem, pi=dummy_progress)
    gridconvert.convert(str(src), str(tmp_path / 'dem.hdr'),
                        pi=dummy_progress)
    grid = gridconvert.convert(str(tmp_path / 'dem.flt'),
                               str(tmp_path / 'dem.omg'), precision=1,
                               pi=dummy_progress)
    assert grid.data_cells == 9
    text = (tmp_path / 'dem.omg').read_text()
    assert 'Width:    4\n' in text
    assert '|1.5|2.2|-9999.0|4.1|\n' in text


def test_missing_input_exits_with_error(tmp_path, capsys):
    status = gridconvert.main(
        [str(tmp_path / 'missing.flt'), str(tmp_path / 'out.asc'), '-q'])
    assert status == 1
    assert capsys.readouterr().err.startswith('ERROR: ')


def test_same_input_and_output(tmp_path):
    with pytest.raises(SystemExit):
        gridconvert.main([str(tmp_path / 'a.asc'), str(tmp_path / 'a.asc')])


def test_split_float_name():
    assert gridconvert.split_float_name('dem.flt') == 'dem'
    assert gridconvert.split_float_name('dir/dem.hdr') == 'dir/dem'
    assert gridconvert.split_float_name('dem.asc') is None
