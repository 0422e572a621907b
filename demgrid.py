'''
In-memory elevation grid with ArcGrid-style metadata, plus the no-data
and progress helpers shared by the grid readers and writers.

Cells are addressed as grid[x, y] where x is the column and y the row;
row 0 is the top row, i.e. the first row stored in a file.
'''

import sys
import enum
import time

import numpy as np


def show_progress(name=""):
    # start time, current time, step per time, next update step, steps per display, next display step
    t = [0, 0, 0, 0, 1, 0]
    recalc_every = 100
    update_every = 0.1
    def pi(i, n):
        if n == 0 or i < t[5]:
            return
        if t[0] == 0:
            t[0] = time.time()
            t[3] = i + recalc_every
        elif i >= t[3]:
            t[1] = time.time()
            t[2] = i / max(t[1] - t[0], 1e-9)
            t[3] = i + recalc_every
            t[4] = int(update_every * t[2])
        t[5] = min(n, i + t[4])
        output_time = ((t[2] and (n - i) / t[2])
                       if i < n else time.time() - t[0])
        output_speed = '%g' % t[2]
        sys.stderr.write("\r\x1B[K%3d%% %s %12d/%d %-7s %.2f" %
                         (i * 100 / n, name, i, n, output_speed, output_time))
        if i == n:
            sys.stderr.write('\n')
        sys.stderr.flush()

    return pi


def dummy_progress(i, n):
    pass


def get_nodata_value(dtype):
    '''
    >>> get_nodata_value(np.int32)
    2147483647
    '''
    try:
        return np.iinfo(dtype).max
    except ValueError:
        return np.finfo(dtype).min


def is_nodata(v, nodata=None):
    if nodata is None:
        nodata = get_nodata_value(v.dtype)
    return v == nodata


def is_data(v, nodata=None):
    '''
    >>> is_data(np.array([1, 2147483647], dtype=np.int32))
    array([ True, False])
    >>> is_data(np.array([1.5, -9999.0]), -9999)
    array([ True, False])
    '''
    if nodata is None:
        nodata = get_nodata_value(v.dtype)
    return v != nodata


def empty(shape, dtype, nodata=None):
    if nodata is None:
        nodata = get_nodata_value(dtype)
    result = np.empty(shape, dtype=dtype)
    result[:] = nodata
    return result


class ElementKind(enum.Enum):
    '''What the cells of a grid mean, independent of their storage width.

    Integer and boolean grids are written as plain integers in text formats;
    floating grids are written in fixed-point notation.
    '''

    FLOAT = 'float'
    INTEGER = 'integer'
    BOOLEAN = 'boolean'

    @classmethod
    def from_dtype(cls, dtype):
        '''
        >>> ElementKind.from_dtype(np.float64)
        <ElementKind.FLOAT: 'float'>
        >>> ElementKind.from_dtype(np.uint8)
        <ElementKind.INTEGER: 'integer'>
        '''
        dtype = np.dtype(dtype)
        if dtype.kind == 'b':
            return cls.BOOLEAN
        if dtype.kind in 'iu':
            return cls.INTEGER
        if dtype.kind == 'f':
            return cls.FLOAT
        raise ValueError("Unsupported grid element type %s" % (dtype,))

    @property
    def is_integral(self):
        return self is not ElementKind.FLOAT


class Grid:
    def __init__(self, width=0, height=0, dtype=np.float32, no_data=None,
                 kind=None):
        self.dtype = np.dtype(dtype)
        if self.dtype.kind == 'b':
            raise ValueError(
                "numpy bool cannot hold a no-data value; store boolean grids "
                "as uint8 with kind=ElementKind.BOOLEAN")
        self.kind = ElementKind.from_dtype(self.dtype) if kind is None else kind
        if no_data is None:
            no_data = get_nodata_value(self.dtype)
        self.no_data = self.dtype.type(no_data)
        self.xllcorner = 0.0
        self.yllcorner = 0.0
        self.cellsize = 1.0
        self.data_cells = 0
        self.data = empty((height, width), self.dtype, self.no_data)

    @classmethod
    def from_array(cls, array, no_data=None, kind=None,
                   xllcorner=0.0, yllcorner=0.0, cellsize=1.0):
        array = np.asarray(array)
        if array.ndim != 2:
            raise ValueError("Expected a 2D array, got shape %s" %
                             (array.shape,))
        grid = cls(0, 0, array.dtype, no_data, kind)
        grid.data = np.array(array, dtype=grid.dtype, order='C')
        grid.xllcorner = float(xllcorner)
        grid.yllcorner = float(yllcorner)
        grid.cellsize = float(cellsize)
        grid.data_cells = grid.count_data_cells()
        return grid

    def __repr__(self):
        return '<Grid %dx%d %s nodata=%s data_cells=%d>' % (
            self.width, self.height, self.dtype.name, self.no_data,
            self.data_cells)

    @property
    def width(self):
        return self.data.shape[1]

    @property
    def height(self):
        return self.data.shape[0]

    @property
    def shape(self):
        return self.data.shape

    @property
    def size(self):
        return self.data.size

    def __getitem__(self, xy):
        x, y = xy
        return self.data[y, x]

    def __setitem__(self, xy, value):
        x, y = xy
        self.data[y, x] = value

    def resize(self, width, height):
        '''Reallocate to width x height cells, all set to no_data.'''
        if width < 0 or height < 0:
            raise ValueError("Invalid grid size %d×%d" % (width, height))
        self.data = empty((height, width), self.dtype, self.no_data)
        self.data_cells = 0

    def set_no_data(self, value):
        self.no_data = self.dtype.type(value)

    def is_data(self):
        return is_data(self.data, self.no_data)

    def is_nodata(self):
        return is_nodata(self.data, self.no_data)

    def count_data_cells(self):
        return int(np.count_nonzero(self.is_data()))

    def min(self):
        valid = self.data[self.is_data()]
        if valid.size == 0:
            return self.no_data
        return valid.min()

    def max(self):
        valid = self.data[self.is_data()]
        if valid.size == 0:
            return self.no_data
        return valid.max()

    def iterrows(self):
        return iter(self.data)
