#!/usr/bin/env python3
'''
Convert elevation grids between ArcGrid ASCII, OmniGlyph and
ESRI floating-point (.hdr/.flt) files.

The format is chosen by extension. For the floating-point pair,
either basename.hdr or basename.flt may be given.
Anything else is read as ArcGrid ASCII.
'''

import os
import sys
import argparse

import numpy as np

import dataio
from demgrid import Grid, show_progress, dummy_progress


FLOAT_EXTENSIONS = (dataio.HEADER_SUFFIX, dataio.DATA_SUFFIX)


def split_float_name(filename):
    base, ext = os.path.splitext(filename)
    if ext in FLOAT_EXTENSIONS:
        return base
    return None


def convert(input, output, dtype=np.float32, precision=dataio.DEFAULT_PRECISION,
            pi=None):
    if os.path.abspath(input) == os.path.abspath(output):
        raise ValueError("Input and output filenames are equal")
    grid = Grid(dtype=dtype)
    in_base = split_float_name(input)
    if in_base is not None:
        dataio.read_floating_data(in_base, grid, pi=pi)
    else:
        dataio.load_ascii_data(input, grid, pi=pi)

    out_base = split_float_name(output)
    if out_base is not None:
        dataio.write_floating_data(out_base, grid, pi=pi)
    else:
        dataio.write_ascii_data(output, grid, precision, pi=pi)
    return grid


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.strip().split('\n')[0])
    parser.add_argument('input')
    parser.add_argument('output')
    parser.add_argument('--dtype', default='float32',
                        help='Element type of the grid (default: float32)')
    parser.add_argument('-p', '--precision', type=int,
                        default=dataio.DEFAULT_PRECISION,
                        help='Decimals in ASCII output (default: %(default)s)')
    parser.add_argument('-q', '--quiet', action='store_true')
    args = parser.parse_args(argv)

    try:
        dtype = np.dtype(args.dtype)
    except TypeError:
        parser.error("Unknown dtype %r" % (args.dtype,))
    if args.quiet:
        dataio.VERBOSE = False
        pi = dummy_progress
    else:
        pi = show_progress(os.path.basename(args.output))

    try:
        grid = convert(args.input, args.output, dtype, args.precision, pi)
    except dataio.GridIOError as exn:
        print("ERROR: %s" % (exn,), file=sys.stderr)
        return 1
    except ValueError as exn:
        parser.error(str(exn))
    if not args.quiet:
        print("Wrote %dx%d grid with %d data cells to %s" %
              (grid.width, grid.height, grid.data_cells, args.output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
