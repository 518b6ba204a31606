# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

"""OpenOCD remote_bitbang command set.

                  TCK TMS TDI
    b'0' - Write    0   0   0
    b'1' - Write    0   0   1
    b'2' - Write    0   1   0
    b'3' - Write    0   1   1
    b'4' - Write    1   0   0
    b'5' - Write    1   0   1
    b'6' - Write    1   1   0
    b'7' - Write    1   1   1

    b'R' - Read TDO -> b'0' or b'1'
    b'Q' - Quit
    b'B' / b'b' - Blink on / off
    b'r' / b's' / b't' / b'u' - Reset variants (TRST, SRST)
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Final, Optional

import attr

PORT: Final = 9823
HOST: Final = '0.0.0.0'

WRITE_BASE: Final = ord('0')
NUM_WRITE_CODES: Final = 8

# bit positions inside (code - '0')
TDI_BIT: Final = 0
TMS_BIT: Final = 1
TCK_BIT: Final = 2

READ: Final = ord('R')
QUIT: Final = ord('Q')

_NOP_NAMES: Final = {
    ord('B'): 'blink on',
    ord('b'): 'blink off',
    ord('r'): 'reset trst=0 srst=0',
    ord('s'): 'reset trst=0 srst=1',
    ord('t'): 'reset trst=1 srst=0',
    ord('u'): 'reset trst=1 srst=1',
}


class Op(Enum):
    SET_SIGNALS = 'set'
    READ_TDO = 'read'
    QUIT = 'quit'
    NOP = 'nop'


@attr.s(auto_attribs=True, frozen=True)
class JTAGSigs:
    tck: bool
    tms: bool
    tdi: bool

    def __str__(self) -> str:
        return f'TCK={self.tck:d} TMS={self.tms:d} TDI={self.tdi:d}'


@attr.s(auto_attribs=True, frozen=True)
class Command:
    op: Op
    code: int
    name: str
    sigs: Optional[JTAGSigs] = None
    known: bool = True


def sigs_from_value(val: int) -> JTAGSigs:
    assert 0 <= val < NUM_WRITE_CODES
    return JTAGSigs(
        tck=bool((val >> TCK_BIT) & 1),
        tms=bool((val >> TMS_BIT) & 1),
        tdi=bool((val >> TDI_BIT) & 1),
    )


def encode(tck: bool, tms: bool, tdi: bool) -> int:
    """Inverse of the write decoding, for hosts building command streams."""
    val = (int(bool(tck)) << TCK_BIT) | (int(bool(tms)) << TMS_BIT) | (int(bool(tdi)) << TDI_BIT)
    return WRITE_BASE + val


def _build_table() -> Dict[int, Command]:
    table = {}
    for val in range(NUM_WRITE_CODES):
        sigs = sigs_from_value(val)
        table[WRITE_BASE + val] = Command(Op.SET_SIGNALS, WRITE_BASE + val, f'write {sigs}', sigs=sigs)
    table[READ] = Command(Op.READ_TDO, READ, 'read')
    table[QUIT] = Command(Op.QUIT, QUIT, 'quit')
    for code, name in _NOP_NAMES.items():
        table[code] = Command(Op.NOP, code, name)
    return table


_COMMANDS: Final = _build_table()


def decode(code: int) -> Command:
    try:
        return _COMMANDS[code]
    except KeyError:
        return Command(Op.NOP, code, f'unknown 0x{code:02x}', known=False)
