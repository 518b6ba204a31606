# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Final, Tuple

from .device import BitbangDevice

log = logging.getLogger(__name__)

IR_LEN: Final = 4
IR_CAPTURE: Final = 0b0001

OP_IDCODE: Final = 0b0010
OP_LEDS: Final = 0b1000
OP_BYPASS: Final = 0b1111

IDCODE: Final = 0x1BAB_0A6F
IDCODE_LEN: Final = 32
LEDS_LEN: Final = 16
BYPASS_LEN: Final = 1


# IEEE 1149.1 state assignments (DCBA)
class TAPState(IntEnum):
    EXIT2_DR = 0x0
    EXIT1_DR = 0x1
    SHIFT_DR = 0x2
    PAUSE_DR = 0x3
    SELECT_IR_SCAN = 0x4
    UPDATE_DR = 0x5
    CAPTURE_DR = 0x6
    SELECT_DR_SCAN = 0x7
    EXIT2_IR = 0x8
    EXIT1_IR = 0x9
    SHIFT_IR = 0xA
    PAUSE_IR = 0xB
    RUN_TEST_IDLE = 0xC
    UPDATE_IR = 0xD
    CAPTURE_IR = 0xE
    TEST_LOGIC_RESET = 0xF


S = TAPState

# current: (TMS=0, TMS=1)
NEXT_STATE: Final = {
    S.TEST_LOGIC_RESET: (S.RUN_TEST_IDLE, S.TEST_LOGIC_RESET),
    S.RUN_TEST_IDLE:    (S.RUN_TEST_IDLE, S.SELECT_DR_SCAN),
    S.SELECT_DR_SCAN:   (S.CAPTURE_DR, S.SELECT_IR_SCAN),
    S.CAPTURE_DR:       (S.SHIFT_DR, S.EXIT1_DR),
    S.SHIFT_DR:         (S.SHIFT_DR, S.EXIT1_DR),
    S.EXIT1_DR:         (S.PAUSE_DR, S.UPDATE_DR),
    S.PAUSE_DR:         (S.PAUSE_DR, S.EXIT2_DR),
    S.EXIT2_DR:         (S.SHIFT_DR, S.UPDATE_DR),
    S.UPDATE_DR:        (S.RUN_TEST_IDLE, S.SELECT_DR_SCAN),
    S.SELECT_IR_SCAN:   (S.CAPTURE_IR, S.TEST_LOGIC_RESET),
    S.CAPTURE_IR:       (S.SHIFT_IR, S.EXIT1_IR),
    S.SHIFT_IR:         (S.SHIFT_IR, S.EXIT1_IR),
    S.EXIT1_IR:         (S.PAUSE_IR, S.UPDATE_IR),
    S.PAUSE_IR:         (S.PAUSE_IR, S.EXIT2_IR),
    S.EXIT2_IR:         (S.SHIFT_IR, S.UPDATE_IR),
    S.UPDATE_IR:        (S.RUN_TEST_IDLE, S.SELECT_DR_SCAN),
}
assert len(NEXT_STATE) == 16


def shift_in(reg: int, bit: bool, length: int) -> int:
    """Shift `bit` in at the top of a `length` bit register, dropping the LSB."""
    reg &= (1 << length) - 1
    return (reg >> 1) | (int(bit) << (length - 1))


class TAPModel(BitbangDevice):
    """Behavioral model of TopMain (see gateware.py).

    The TAP registers change on TCK rising edges, TDO on falling edges. Edges
    are detected by comparing TCK against its value at the previous evaluate().
    """

    def __init__(self, idcode: int = IDCODE):
        self.idcode = idcode
        self.tck = False
        self.tms = False
        self.tdi = False
        self.tdo = False
        self.rst = False
        self.prev_tck = False
        self.cycles = 0
        self.time = 0
        self.finalized = False
        self._reset()

    def _reset(self) -> None:
        self.state = TAPState.TEST_LOGIC_RESET
        self.ir = OP_IDCODE
        self.ir_shift = 0
        self.dr = 0
        self.tdo = False
        self.led1 = 0
        self.led2 = 0

    @property
    def dr_len(self) -> int:
        if self.ir == OP_IDCODE:
            return IDCODE_LEN
        if self.ir == OP_LEDS:
            return LEDS_LEN
        return BYPASS_LEN

    def _capture_dr(self) -> int:
        if self.ir == OP_IDCODE:
            return self.idcode
        if self.ir == OP_LEDS:
            return self.led1 | (self.led2 << 8)
        return 0

    def _rising(self) -> None:
        s = self.state
        if s is TAPState.TEST_LOGIC_RESET:
            self.ir = OP_IDCODE
        elif s is TAPState.UPDATE_IR:
            self.ir = self.ir_shift
            log.debug('IR <- 0x%x', self.ir)

        if s is TAPState.CAPTURE_IR:
            self.ir_shift = IR_CAPTURE
        elif s is TAPState.SHIFT_IR:
            self.ir_shift = shift_in(self.ir_shift, self.tdi, IR_LEN)

        if s is TAPState.CAPTURE_DR:
            self.dr = self._capture_dr()
        elif s is TAPState.SHIFT_DR:
            self.dr = shift_in(self.dr, self.tdi, self.dr_len)
        elif s is TAPState.UPDATE_DR and self.ir == OP_LEDS:
            self.led1 = self.dr & 0xff
            self.led2 = (self.dr >> 8) & 0xff

        self.state = NEXT_STATE[s][int(self.tms)]

    def _falling(self) -> None:
        if self.state is TAPState.SHIFT_DR:
            self.tdo = bool(self.dr & 1)
        elif self.state is TAPState.SHIFT_IR:
            self.tdo = bool(self.ir_shift & 1)
        else:
            self.tdo = False

    # BitbangDevice --------------------------------------------------------------------------------

    def set_inputs(self, tck: bool, tms: bool, tdi: bool) -> None:
        self.tck = bool(tck)
        self.tms = bool(tms)
        self.tdi = bool(tdi)

    def evaluate(self) -> None:
        if self.rst:
            self._reset()
        elif self.tck and not self.prev_tck:
            self._rising()
        elif not self.tck and self.prev_tck:
            self._falling()
        self.prev_tck = self.tck

    def get_tdo(self) -> bool:
        return self.tdo

    def get_leds(self) -> Tuple[int, int]:
        return self.led1, self.led2

    def set_reset(self, active: bool) -> None:
        self.rst = bool(active)
        if self.rst:
            self._reset()

    def step_sys_clk(self) -> None:
        self.time += 1
        self.evaluate()
        self.time += 1
        self.cycles += 1

    def finalize(self) -> None:
        log.debug('model finalized after %d sys cycles', self.cycles)
        self.finalized = True
