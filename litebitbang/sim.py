#!/usr/bin/env python3

# Copyright (c) 2020 Florent Kermarrec <florent@enjoy-digital.fr>
# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

from __future__ import annotations

import argparse
from pathlib import Path
import shutil
from typing import Final, Optional, Sequence

from cocotb_tools.runner import get_runner

from litebitbang.gateware import TOP_NAME, convert
from litebitbang.protocol import PORT
from litebitbang.tap_model import IDCODE

TEST_MODULE: Final = 'litebitbang.sim_tests'
BENCHES: Final = ('reset_and_read_idcode', 'leds_survive_reconnect')
SERVE_BENCH: Final = 'serve'

# simulator name -> executable
SIMULATORS: Final = {
    'icarus': 'iverilog',
    'verilator': 'verilator',
}


def find_simulator() -> Optional[str]:
    for sim, tool in SIMULATORS.items():
        if shutil.which(tool):
            return sim
    return None


def write_verilog(build_dir: Path, idcode: int = IDCODE) -> Path:
    build_dir.mkdir(parents=True, exist_ok=True)
    path = build_dir / f'{TOP_NAME}.v'
    convert(idcode=idcode).write(str(path))
    return path


def build(simulator: str, build_dir: Path, idcode: int = IDCODE):
    src = write_verilog(build_dir, idcode=idcode)
    runner = get_runner(simulator)
    runner.build(
        sources      = [src],
        hdl_toplevel = TOP_NAME,
        build_dir    = build_dir,
        timescale    = ('1ns', '1ps'),
        always       = True,
    )
    return runner


def run(simulator: str, build_dir: Path, benches: Sequence[str] = BENCHES, idcode: int = IDCODE, port: int = PORT):
    runner = build(simulator, build_dir, idcode=idcode)
    extra_env = {'LITEBITBANG_IDCODE': hex(idcode)}
    if SERVE_BENCH in benches:
        extra_env['LITEBITBANG_SERVE_PORT'] = str(port)
    return runner.test(
        hdl_toplevel = TOP_NAME,
        test_module  = TEST_MODULE,
        testcase     = list(benches),
        build_dir    = build_dir,
        extra_env    = extra_env,
    )


# Main ---------------------------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(description="TopMain HDL simulation")
    genopts = parser.add_mutually_exclusive_group()
    genopts.add_argument("--run",   default=False, action="store_true",    help="Build and run the benches")
    genopts.add_argument("--serve", default=False, action="store_true",    help="Build and serve remote_bitbang from the HDL model")
    genopts.add_argument("--dump",  default=False, action="store_true",    help="Only write the Verilog")
    parser.add_argument("--simulator",            default=None,            help="icarus or verilator (default: first one found)")
    parser.add_argument("--build-dir",            default="build/sim",     help="Build directory")
    parser.add_argument("--idcode",               default=IDCODE,          type=lambda s: int(s, 0), help="IDCODE register value")
    parser.add_argument("--port",                 default=PORT,            type=int, help="TCP port for --serve")
    args = parser.parse_args()

    build_dir = Path(args.build_dir).absolute()
    if args.dump:
        print(write_verilog(build_dir, idcode=args.idcode))
        return

    simulator = args.simulator or find_simulator()
    if simulator is None:
        parser.error(f'no HDL simulator found, install one of: {", ".join(SIMULATORS.values())}')

    if args.serve:
        run(simulator, build_dir, benches=[SERVE_BENCH], idcode=args.idcode, port=args.port)
    elif args.run:
        run(simulator, build_dir, idcode=args.idcode)
    else:
        build(simulator, build_dir, idcode=args.idcode)


if __name__ == "__main__":
    main()
