#!/usr/bin/env python3
# cli.py
import argparse
import logging
import sys

import numpy as np

from spectralNS.config import RunConfig
from spectralNS.dump import FORMATS, SnapshotWriter
from spectralNS.diagnostics import format_record
from spectralNS.errors import ConfigurationError
from spectralNS.hat import SpectralDNS
from spectralNS.io import read_velocity_raw
from spectralNS.transforms import SerialTransform

PROG = "dns"

USAGE = """\
Usage: dns [-v] [-d] -i <input.raw> -n <viscosity> -t <end time> -s <time step>

Options:
  -i <input.raw>    Input file
  -n <viscosity>    Viscosity
  -t <end time>     End time
  -s <time step>    Time step
  -v                Verbose output
  -d                Dump snapshots
  -o <dir>          Snapshot directory (default: .)
  --format FMT      Snapshot format: xdmf (raw + XDMF) or vti
  --backend B       auto, cpu or gpu
  --workers N       FFT threads (CPU backend)
  -h                Show this help message

Example:
  dns -i tgv.raw -n 0.01 -t 1.0 -s 0.001 -v
"""


class _HelpAction(argparse.Action):
    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        sys.stderr.write(USAGE)
        parser.exit(1)


class ArgumentParser(argparse.ArgumentParser):
    """Reports errors as 'dns: error: ...' and exits with status 1."""

    def error(self, message):
        self.exit(1, f"{PROG}: error: {message}\n")


def build_parser():
    p = ArgumentParser(prog=PROG, add_help=False, allow_abbrev=False)
    p.add_argument("-h", "--help", action=_HelpAction)
    p.add_argument("-i", "--input", dest="input_path")
    p.add_argument("-n", "--viscosity", dest="nu", type=float)
    p.add_argument("-t", "--end-time", dest="T", type=float)
    p.add_argument("-s", "--time-step", dest="dt", type=float)
    p.add_argument("-v", "--verbose", action="store_true")
    p.add_argument("-d", "--dump", action="store_true")
    p.add_argument("-o", "--output-dir", dest="out_dir", default=".")
    p.add_argument("--format", dest="dump_format", choices=FORMATS, default="xdmf")
    p.add_argument("--backend", choices=("auto", "cpu", "gpu"), default="auto")
    p.add_argument("--workers", type=int)
    return p


def parse_config(argv=None) -> RunConfig:
    args = build_parser().parse_args(argv)
    return RunConfig(**vars(args)).validate()


def run(cfg: RunConfig, out=None):
    """
    Load the input field and integrate it, printing one record per interval.
    Floating-point traps cover the whole run, from reading the input to the
    last snapshot.
    """
    out = sys.stdout if out is None else out

    def emit(rec, _solver):
        print(format_record(rec), file=out, flush=True)

    with np.errstate(divide="raise", over="raise", invalid="raise"):
        n, u, v, w = read_velocity_raw(cfg.input_path)
        gateway = SerialTransform(n, backend=cfg.backend, workers=cfg.workers)
        solver = SpectralDNS(gateway, nu=cfg.nu)
        solver.set_velocity_real(u, v, w)
        writer = SnapshotWriter(cfg.out_dir, cfg.dump_format) if cfg.dump else None
        return solver.run(cfg.T, cfg.dt, callback=emit, writer=writer)


def main(argv=None) -> int:
    try:
        cfg = parse_config(argv)
    except ConfigurationError as e:
        print(f"{PROG}: error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(level=logging.INFO if cfg.verbose else logging.WARNING,
                        format=f"{PROG}: %(message)s", stream=sys.stderr)
    try:
        run(cfg)
    except ConfigurationError as e:
        print(f"{PROG}: error: {e}", file=sys.stderr)
        return 1
    except FloatingPointError as e:
        print(f"{PROG}: error: floating point exception: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
