#!/usr/bin/env python3

# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

from __future__ import annotations

import argparse
import socket
from typing import Final, Iterable, List, Optional

from bitstring import Bits
from rich import print

from litebitbang.protocol import PORT, READ, QUIT, encode

RESET_TMS: Final = (1, 1, 1, 1, 1, 0)
TO_SHIFT_IR: Final = (1, 1, 0, 0)
TO_SHIFT_DR: Final = (1, 0, 0)
EXIT_TO_IDLE: Final = (1, 0)


def clock_commands(tms: bool, tdi: bool, read: bool = False) -> bytes:
    """One TCK period: falling edge, optional TDO sample, rising edge."""
    cmds = bytearray([encode(False, tms, tdi)])
    if read:
        cmds.append(READ)
    cmds.append(encode(True, tms, tdi))
    return bytes(cmds)


def tms_commands(tms_bits: Iterable[int], tdi: bool = False) -> bytes:
    return b''.join(clock_commands(bool(tms), tdi) for tms in tms_bits)


def lsb_first(value: int, length: int) -> List[bool]:
    return list(reversed(Bits(uint=value, length=length)))


def shift_commands(value: int, length: int, read: bool = True) -> bytes:
    bits = lsb_first(value, length)
    return b''.join(clock_commands(i == length - 1, tdi, read=read) for i, tdi in enumerate(bits))


def scan_commands(prefix: Iterable[int], value: int, length: int) -> bytes:
    return tms_commands(prefix) + shift_commands(value, length) + tms_commands(EXIT_TO_IDLE)


def ir_commands(value: int, length: int) -> bytes:
    """Scan the IR starting from Run-Test/Idle, ending back in Run-Test/Idle."""
    return scan_commands(TO_SHIFT_IR, value, length)


def dr_commands(value: int, length: int) -> bytes:
    """Scan the DR starting from Run-Test/Idle, ending back in Run-Test/Idle."""
    return scan_commands(TO_SHIFT_DR, value, length)


def idcode_commands(length: int = 32) -> bytes:
    # Test-Logic-Reset selects IDCODE
    return tms_commands(RESET_TMS) + dr_commands(0, length)


def tdo_value(rsp: bytes) -> int:
    """Responses arrive LSB first."""
    bits = Bits([c == ord('1') for c in reversed(rsp)])
    return bits.uint if len(bits) else 0


class BitbangClient:
    def __init__(self, host: str = '127.0.0.1', port: int = PORT, sock: Optional[socket.socket] = None):
        if sock is None:
            sock = socket.create_connection((host, port))
        self.sock = sock

    def execute(self, commands: bytes) -> bytes:
        self.sock.sendall(commands)
        read_count = commands.count(READ)
        rsp = b''
        while len(rsp) < read_count:
            chunk = self.sock.recv(read_count - len(rsp))
            if not chunk:
                raise ConnectionError(f'bridge closed after {len(rsp)}/{read_count} responses')
            rsp += chunk
        return rsp

    def read_tdo(self) -> bool:
        return self.execute(bytes([READ])) == b'1'

    def write(self, tck: bool, tms: bool, tdi: bool) -> None:
        self.execute(bytes([encode(tck, tms, tdi)]))

    def reset_tap(self) -> None:
        self.execute(tms_commands(RESET_TMS))

    def shift_ir(self, value: int, length: int) -> int:
        """The TAP must be in Run-Test/Idle, e.g. after reset_tap()."""
        return tdo_value(self.execute(ir_commands(value, length)))

    def shift_dr(self, value: int, length: int) -> int:
        """The TAP must be in Run-Test/Idle, e.g. after reset_tap()."""
        return tdo_value(self.execute(dr_commands(value, length)))

    def read_idcode(self, length: int = 32) -> int:
        return tdo_value(self.execute(idcode_commands(length)))

    def blink(self, on: bool) -> None:
        self.execute(b'B' if on else b'b')

    def quit(self) -> None:
        self.sock.sendall(bytes([QUIT]))

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> BitbangClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def main():
    parser = argparse.ArgumentParser(description="Read the IDCODE of a remote_bitbang target")
    parser.add_argument("--host", default="127.0.0.1",          help="Bridge address")
    parser.add_argument("--port", default=PORT, type=int,       help="Bridge port")
    parser.add_argument("--quit", default=False, action="store_true", help="Terminate the bridge afterwards")
    args = parser.parse_args()

    with BitbangClient(args.host, args.port) as client:
        idcode = client.read_idcode()
        print(f'idcode: 0x{idcode:08x}')
        if args.quit:
            client.quit()


if __name__ == "__main__":
    main()
