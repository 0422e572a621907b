'''
Read and write elevation grids as ArcGrid ASCII, OmniGlyph and
ESRI floating-point (.hdr/.flt) files.
'''

import os
import sys
import time
import decimal
import collections

import numpy as np

from demgrid import show_progress


DESCRIPTION = '''\
Readers and writers for elevation grids in ArcGrid ASCII, OmniGlyph and
ESRI floating-point (.hdr/.flt) formats.

Simple usage::

    import numpy as np
    from demgrid import Grid
    from dataio import write_floating_data, read_floating_data

    grid = Grid.from_array(np.zeros((3, 4), np.float32), no_data=-9999)
    write_floating_data('dem', grid)       # writes dem.hdr and dem.flt
    copy = read_floating_data('dem', Grid())

Every reader and writer accepts pi=demgrid.dummy_progress
to disable the progress line on stderr.

Binary files are written and read in host byte order and host element
width only; the BYTEORDER tag is always LSBFIRST.'''


DEFAULT_PRECISION = 8
HEADER_PRECISION = 10
OMG_SUFFIX = '.omg'
HEADER_SUFFIX = '.hdr'
DATA_SUFFIX = '.flt'
BYTEORDER_TAG = 'LSBFIRST'

# Set to False to silence the step-by-step messages on stderr.
VERBOSE = True

FLOAT_HEADER_KEYS = (
    'ncols nrows xllcorner yllcorner cellsize NODATA_value BYTEORDER'.split())
ARCGRID_HEADER_KEYS = frozenset(
    'ncols nrows xllcorner yllcorner xllcenter yllcenter cellsize nodata_value'
    .split())

FloatHeader = collections.namedtuple(
    'FloatHeader', 'ncols nrows xllcorner yllcorner cellsize nodata byteorder')

DIR_NAMES = [
    '\N{RIGHTWARDS ARROW}',
    '\N{SOUTH EAST ARROW}',
    '\N{DOWNWARDS ARROW}',
    '\N{SOUTH WEST ARROW}',
    '\N{LEFTWARDS ARROW}',
    '\N{NORTH WEST ARROW}',
    '\N{UPWARDS ARROW}',
    '\N{NORTH EAST ARROW}',
]
NO_DIR_NAME = '\N{MIDDLE DOT}'


class GridIOError(Exception):
    def __init__(self, filename, message):
        super().__init__('%s: %s' % (filename, message))
        self.filename = filename


class FileOpenError(GridIOError):
    pass


class HeaderParseError(GridIOError, ValueError):
    pass


class PayloadError(GridIOError, ValueError):
    '''Grid data is shorter than the header promises, or malformed.'''


def diagnostic(fmt, *args):
    if not VERBOSE:
        return
    sys.stderr.write(fmt % args if args else fmt)
    sys.stderr.flush()


def open_file(filename, mode, description):
    writing = 'r' not in mode
    diagnostic('Opening %s "%s" for %s...', description, filename,
               'writing' if writing else 'reading')
    kwargs = {}
    if 'b' not in mode:
        kwargs['encoding'] = 'utf-8'
        if writing:
            kwargs['newline'] = '\n'
    try:
        fp = open(filename, mode, **kwargs)
    except OSError as exn:
        diagnostic('failed!\n')
        raise FileOpenError(
            filename, 'cannot open for %s: %s' %
            ('writing' if writing else 'reading', exn.strerror or exn)) from exn
    diagnostic('succeeded.\n')
    return fp


def value_formatter(kind, precision):
    '''Return a function formatting one cell value of the given kind.

    >>> from demgrid import ElementKind
    >>> value_formatter(ElementKind.FLOAT, 3)(2.5)
    '2.500'
    >>> value_formatter(ElementKind.INTEGER, 8)(-9999.0)
    '-9999'
    >>> value_formatter(ElementKind.BOOLEAN, 8)(True)
    '1'
    '''
    if kind.is_integral:
        def fmt(v):
            return '%d' % int(v)
    else:
        def fmt(v):
            return '%.*f' % (precision, v)
    return fmt


def format_sentinel(grid):
    '''Header text for grid.no_data, exact for integer storage.

    >>> from demgrid import Grid
    >>> format_sentinel(Grid(dtype=np.int64))
    '9223372036854775807.0000000000'
    >>> format_sentinel(Grid(dtype=np.float32, no_data=-9999))
    '-9999.0000000000'
    '''
    if grid.dtype.kind in 'iu':
        return '%d.%s' % (int(grid.no_data), '0' * HEADER_PRECISION)
    return '%.*f' % (HEADER_PRECISION, grid.no_data)


def parse_sentinel(token, dtype, filename):
    '''Parse a NODATA_value for a grid of the given dtype.

    Integer sentinels are parsed exactly and must fit the dtype.

    >>> parse_sentinel('-9999.0000000000', np.int16, '<header>')
    -9999
    >>> parse_sentinel('-9999', np.float32, '<header>')
    -9999.0
    '''
    dtype = np.dtype(dtype)
    if dtype.kind not in 'iu':
        try:
            return float(token)
        except ValueError as exn:
            raise HeaderParseError(
                filename, 'malformed NODATA_value %r' % (token,)) from exn
    try:
        value = decimal.Decimal(token)
    except decimal.InvalidOperation as exn:
        raise HeaderParseError(
            filename, 'malformed NODATA_value %r' % (token,)) from exn
    if not value.is_finite() or value != value.to_integral_value():
        raise HeaderParseError(
            filename, 'NODATA_value %s is not an integer' % (token,))
    value = int(value)
    info = np.iinfo(dtype)
    if not info.min <= value <= info.max:
        raise HeaderParseError(
            filename, 'NODATA_value %s does not fit %s' % (token, dtype.name))
    return value


def parse_row(values, dtype):
    # Integer rows are parsed exactly when they hold plain integers.
    if dtype.kind in 'iu':
        try:
            return np.array(values, dtype=dtype)
        except (ValueError, OverflowError):
            pass
    return np.array(values, dtype=np.float64)


def write_arcgrid_header(fp, grid, fmt, precision):
    fp.write('ncols\t\t%d\n' % grid.width)
    fp.write('nrows\t\t%d\n' % grid.height)
    fp.write('xllcorner\t%.*f\n' % (precision, grid.xllcorner))
    fp.write('yllcorner\t%.*f\n' % (precision, grid.yllcorner))
    fp.write('cellsize\t%.*f\n' % (precision, grid.cellsize))
    fp.write('NODATA_value\t%s\n' % fmt(grid.no_data))


def write_omg_header(fp, grid, fmt):
    # "Actual range" assumes no_data is a small negative value.
    fp.write('Contents: Pixel array\n')
    fp.write('\n')
    fp.write('Width:    %d\n' % grid.width)
    fp.write('Height:   %d\n' % grid.height)
    fp.write('\n')
    fp.write('Spectral bands:   1\n')
    fp.write('Bits per band:   32\n')
    fp.write('Range of values:   %s,%s\n' % (fmt(grid.min()), fmt(grid.max())))
    fp.write('Actual range:   %s,%s\n' % (fmt(grid.no_data), fmt(grid.max())))
    fp.write('Gamma exponent:   0.\n')
    fp.write('Resolution:   100 pixels per inch\n')
    fp.write('\n')
    fp.write('|\n')


def write_ascii_data(filename, grid, precision=DEFAULT_PRECISION, pi=None):
    '''Write grid as ArcGrid ASCII, or as OmniGlyph if filename ends in .omg.

    Integer and boolean grids are written as plain integers;
    floating grids in fixed-point notation with `precision` decimals.
    '''
    filename = os.fspath(filename)
    if pi is None:
        pi = show_progress(os.path.basename(filename))
    t = time.time()
    fmt = value_formatter(grid.kind, precision)
    omg = filename.endswith(OMG_SUFFIX)

    with open_file(filename, 'w', 'ASCII output file') as fp:
        if omg:
            diagnostic('Writing OmniGlyph file header...')
            write_omg_header(fp, grid, fmt)
        else:
            diagnostic('Writing ArcGrid ASCII file header...')
            write_arcgrid_header(fp, grid, fmt, precision)
        diagnostic('succeeded.\n')

        diagnostic('Writing ArcGrid ASCII file data...\n')
        n = grid.size
        # A grid without columns has no data rows at all.
        for y, row in enumerate(grid.iterrows() if grid.width else ()):
            pi(y * grid.width, n)
            cells = [fmt(v) for v in row.tolist()]
            if omg:
                fp.write('|%s\n' % ''.join(c + '|' for c in cells))
            else:
                fp.write('%s\n' % ' '.join(cells))
        pi(n, n)

    diagnostic('Write time was: %f\n', time.time() - t)


def parse_arcgrid_header(lines, filename, dtype=np.float64):
    '''Consume header lines from `lines`.

    Returns (ncols, nrows, xllcorner, yllcorner, cellsize, nodata)
    and the first data line (None if there is none).
    nodata is None when the header has no NODATA_value line;
    otherwise it is parsed for a grid of the given dtype.
    '''
    fields = {}
    first_row = None
    for line in lines:
        parts = line.split()
        if not parts:
            continue
        key = parts[0].lower()
        if key not in ARCGRID_HEADER_KEYS:
            first_row = line
            break
        if len(parts) != 2:
            raise HeaderParseError(
                filename, 'malformed header line %r' % (line.rstrip('\n'),))
        if key in fields:
            raise HeaderParseError(filename, 'duplicate header field %s' %
                                   (parts[0],))
        fields[key] = parts[1]

    try:
        ncols = int(fields['ncols'])
        nrows = int(fields['nrows'])
        cellsize = float(fields['cellsize'])
        corners = []
        for axis in 'xy':
            if axis + 'llcorner' in fields:
                corners.append(float(fields[axis + 'llcorner']))
            else:
                corners.append(float(fields[axis + 'llcenter']) - cellsize / 2)
    except KeyError as exn:
        raise HeaderParseError(
            filename, 'missing header field %s' % (exn.args[0],)) from exn
    except ValueError as exn:
        raise HeaderParseError(
            filename, 'malformed header value: %s' % (exn,)) from exn
    if ncols < 0 or nrows < 0:
        raise HeaderParseError(
            filename, 'invalid grid size %d×%d' % (ncols, nrows))
    nodata = fields.get('nodata_value')
    if nodata is not None:
        nodata = parse_sentinel(nodata, dtype, filename)
    xllcorner, yllcorner = corners
    return (ncols, nrows, xllcorner, yllcorner, cellsize, nodata), first_row


def load_ascii_data(filename, grid, pi=None):
    '''Read an ArcGrid ASCII file into grid, which is resized to fit.

    Returns grid.
    '''
    filename = os.fspath(filename)
    if pi is None:
        pi = show_progress(os.path.basename(filename))
    t = time.time()

    with open_file(filename, 'r', 'ASCII input file') as fp:
        lines = iter(fp)
        diagnostic('Reading ArcGrid ASCII file header...')
        try:
            header, first_row = parse_arcgrid_header(
                lines, filename, grid.dtype)
        except HeaderParseError:
            diagnostic('failed!\n')
            raise
        diagnostic('succeeded.\n')
        ncols, nrows, xllcorner, yllcorner, cellsize, nodata = header

        diagnostic('Resizing grid...')
        if nodata is not None:
            grid.set_no_data(nodata)
        grid.resize(ncols, nrows)
        grid.xllcorner = xllcorner
        grid.yllcorner = yllcorner
        grid.cellsize = cellsize
        diagnostic('succeeded.\n')

        diagnostic('Reading data...\n')
        if first_row is not None:
            lines = _chain_first(first_row, lines)
        # Lines after the nrows-th data row are not read.
        rows = (line for line in lines if line.strip())
        n = grid.size
        data_cells = 0
        for y in range(nrows if ncols else 0):
            pi(y * ncols, n)
            line = next(rows, None)
            if line is None:
                raise PayloadError(
                    filename, 'expected %d rows, found %d' % (nrows, y))
            values = line.split()
            if len(values) != ncols:
                raise PayloadError(
                    filename, 'row %d has %d values, expected %d' %
                    (y, len(values), ncols))
            try:
                row = parse_row(values, grid.dtype)
            except ValueError as exn:
                raise PayloadError(
                    filename, 'row %d: %s' % (y, exn)) from exn
            grid.data[y] = row
            data_cells += int(np.count_nonzero(grid.data[y] != grid.no_data))
        pi(n, n)
        grid.data_cells = data_cells

    diagnostic('Read time was: %f\n', time.time() - t)
    return grid


def _chain_first(first, rest):
    yield first
    yield from rest


def format_float_header(grid):
    return ''.join([
        'ncols\t\t%d\n' % grid.width,
        'nrows\t\t%d\n' % grid.height,
        'xllcorner\t%.*f\n' % (HEADER_PRECISION, grid.xllcorner),
        'yllcorner\t%.*f\n' % (HEADER_PRECISION, grid.yllcorner),
        'cellsize\t%.*f\n' % (HEADER_PRECISION, grid.cellsize),
        'NODATA_value\t%s\n' % format_sentinel(grid),
        'BYTEORDER\t%s\n' % BYTEORDER_TAG,
    ])


def write_floating_data(basename, grid, pi=None):
    '''Write grid to basename.hdr and basename.flt.

    The data file holds the cells in row-major order, each in the native
    representation of grid.dtype. Byte order is not inspected:
    the header always says LSBFIRST.

    Returns the pair of filenames written.
    '''
    basename = os.fspath(basename)
    fn_header = basename + HEADER_SUFFIX
    fn_data = basename + DATA_SUFFIX
    if pi is None:
        pi = show_progress(os.path.basename(fn_data))
    t = time.time()

    with open_file(fn_header, 'w', 'floating-point header file') as fp:
        diagnostic('Writing floating-point header file...')
        fp.write(format_float_header(grid))
        diagnostic('succeeded.\n')

    # fn_header is left in place if this fails.
    with open_file(fn_data, 'wb', 'floating-point data file') as fp:
        diagnostic('Writing floating-point data file...\n')
        n = grid.size
        for y, row in enumerate(grid.iterrows()):
            pi(y * grid.width, n)
            fp.write(row.tobytes())
        pi(n, n)

    diagnostic('Write time was: %f\n', time.time() - t)
    return fn_header, fn_data


def parse_float_header(text, filename='<header>', dtype=np.float64):
    '''
    >>> parse_float_header("ncols 3 nrows 2 xllcorner 0 yllcorner 1.5 "
    ...                    "cellsize 30 NODATA_value -9999 BYTEORDER LSBFIRST")
    FloatHeader(ncols=3, nrows=2, xllcorner=0.0, yllcorner=1.5, cellsize=30.0, nodata=-9999.0, byteorder='L')
    '''
    tokens = text.split()
    if len(tokens) != 2 * len(FLOAT_HEADER_KEYS):
        raise HeaderParseError(
            filename, 'expected %d labelled header fields, found %d tokens' %
            (len(FLOAT_HEADER_KEYS), len(tokens)))
    labels = tokens[0::2]
    values = tokens[1::2]
    for i, (expected, label) in enumerate(zip(FLOAT_HEADER_KEYS, labels)):
        if label != expected:
            raise HeaderParseError(
                filename, 'header field %d is %r, expected %r' %
                (i + 1, label, expected))
    try:
        ncols = int(values[0])
        nrows = int(values[1])
        xllcorner, yllcorner, cellsize = map(float, values[2:5])
    except ValueError as exn:
        raise HeaderParseError(
            filename, 'malformed header value: %s' % (exn,)) from exn
    if ncols < 0 or nrows < 0:
        raise HeaderParseError(
            filename, 'invalid grid size %d×%d' % (ncols, nrows))
    nodata = parse_sentinel(values[5], dtype, filename)
    return FloatHeader(ncols, nrows, xllcorner, yllcorner, cellsize, nodata,
                       values[6][0])


def read_floating_data(basename, grid, pi=None):
    '''Read basename.hdr and basename.flt into grid.

    grid is resized to the header's dimensions and takes its metadata
    from the header; its dtype decides how the data file is read.
    grid.data_cells is recomputed from the data. Returns grid.
    '''
    basename = os.fspath(basename)
    fn_header = basename + HEADER_SUFFIX
    fn_data = basename + DATA_SUFFIX
    if pi is None:
        pi = show_progress(os.path.basename(fn_data))
    t = time.time()

    with open_file(fn_header, 'r', 'floating-point header file') as fp:
        diagnostic('Reading DEM header...')
        try:
            try:
                text = fp.read()
            except UnicodeDecodeError as exn:
                raise HeaderParseError(
                    fn_header, 'not a text header: %s' % (exn,)) from exn
            header = parse_float_header(text, fn_header, grid.dtype)
        except HeaderParseError:
            diagnostic('failed!\n')
            raise
        diagnostic('succeeded.\n')

    diagnostic('The loaded DEM will require approximately %dMB of RAM.\n',
               header.ncols * header.nrows * grid.dtype.itemsize // 1024 // 1024)

    diagnostic('Resizing grid...')
    grid.set_no_data(header.nodata)
    grid.resize(header.ncols, header.nrows)
    grid.xllcorner = header.xllcorner
    grid.yllcorner = header.yllcorner
    grid.cellsize = header.cellsize
    diagnostic('succeeded.\n')

    with open_file(fn_data, 'rb', 'floating-point data file') as fp:
        diagnostic('Reading data...\n')
        row_bytes = header.ncols * grid.dtype.itemsize
        n = grid.size
        data_cells = 0
        # Bytes past ncols × nrows cells are left unread.
        for y in range(header.nrows):
            pi(y * header.ncols, n)
            buf = fp.read(row_bytes)
            if len(buf) != row_bytes:
                raise PayloadError(
                    fn_data, 'row %d: expected %d bytes, got %d' %
                    (y, row_bytes, len(buf)))
            row = np.frombuffer(buf, dtype=grid.dtype)
            grid.data[y] = row
            data_cells += int(np.count_nonzero(row != grid.no_data))
        pi(n, n)
        grid.data_cells = data_cells

    diagnostic('Read time was: %f\n', time.time() - t)
    return grid


def write_arrows(filename, flowdirs):
    '''Write a D8 flow direction grid as one line of arrows per row.

    Directions are bit-coded: 1 << i for E, SE, S, SW, W, NW, N, NE.
    Sinks (0) and no-data cells are written as a middle dot.
    '''
    filename = os.fspath(filename)
    names = [NO_DIR_NAME] + DIR_NAMES
    with open_file(filename, 'w', 'arrow output file') as fp:
        for y, row in enumerate(flowdirs.iterrows()):
            line = []
            for x, v in enumerate(row.tolist()):
                if v == flowdirs.no_data:
                    line.append(NO_DIR_NAME)
                    continue
                v = int(v)
                if v < 0 or v > 128 or v & (v - 1):
                    raise PayloadError(
                        filename, 'invalid flow direction %d at (%d, %d)' %
                        (v, x, y))
                line.append(names[v.bit_length()])
            fp.write('%s\n' % ''.join(line))
