# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

from __future__ import annotations

import logging
from typing import Final, Tuple

log = logging.getLogger(__name__)

RESET_CYCLES: Final = 10


class BitbangDevice:
    """JTAG-facing view of a simulated device.

    Only the three JTAG inputs, TDO and the two LED outputs are visible here.
    Implementations own all signal state; callers never cache it.
    """

    def set_inputs(self, tck: bool, tms: bool, tdi: bool) -> None:
        raise NotImplementedError

    def evaluate(self) -> None:
        """Let the device observe its current inputs and update its outputs."""
        raise NotImplementedError

    def get_tdo(self) -> bool:
        raise NotImplementedError

    def get_leds(self) -> Tuple[int, int]:
        raise NotImplementedError

    def set_reset(self, active: bool) -> None:
        raise NotImplementedError

    def step_sys_clk(self) -> None:
        """One full system clock cycle, independent of TCK."""
        raise NotImplementedError

    def finalize(self) -> None:
        raise NotImplementedError


def reset_sequence(dev: BitbangDevice, cycles: int = RESET_CYCLES) -> None:
    cycles = max(cycles, RESET_CYCLES)
    log.debug('asserting reset for %d cycles', cycles)
    dev.set_reset(True)
    dev.set_inputs(tck=False, tms=True, tdi=False)
    for _ in range(cycles):
        dev.step_sys_clk()
    dev.set_reset(False)
    log.debug('reset released')
