#!/usr/bin/env python3

# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

import argparse
import logging
import sys

from rich.logging import RichHandler

from litebitbang.device import RESET_CYCLES, reset_sequence
from litebitbang.protocol import HOST, PORT
from litebitbang.server import BitbangServer, Bridge
from litebitbang.tap_model import IDCODE, TAPModel

log = logging.getLogger('litebitbang')


def setup_logging(verbose: int) -> None:
    level = logging.DEBUG if verbose > 0 else logging.INFO
    logging.basicConfig(level=level, format='%(message)s', datefmt='[%X]', handlers=[RichHandler()])


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="remote_bitbang JTAG bridge for the TopMain model")
    parser.add_argument("--bind",         default=HOST,                            help="Address to listen on")
    parser.add_argument("--port",         default=PORT,         type=int,          help="TCP port (default: 9823)")
    parser.add_argument("--idcode",       default=IDCODE,       type=lambda s: int(s, 0), help="IDCODE register value")
    parser.add_argument("--reset-cycles", default=RESET_CYCLES, type=int,          help="System clock cycles to hold reset")
    parser.add_argument("-v", "--verbose", default=0,           action="count",    help="Log every ignored command")
    args = parser.parse_args(argv)
    if args.reset_cycles < RESET_CYCLES:
        parser.error(f'--reset-cycles must be at least {RESET_CYCLES}')

    setup_logging(args.verbose)

    device = TAPModel(idcode=args.idcode)
    reset_sequence(device, args.reset_cycles)
    bridge = Bridge(device)

    server = BitbangServer(bridge, host=args.bind, port=args.port)
    try:
        server.listen()
    except OSError as e:
        log.error('Cannot listen on %s:%d: %s', args.bind, args.port, e)
        return 1

    try:
        server.run()
    except KeyboardInterrupt:
        log.info('Interrupted')
    finally:
        server.close()
        bridge.finalize()
    return 0


if __name__ == "__main__":
    sys.exit(main())
