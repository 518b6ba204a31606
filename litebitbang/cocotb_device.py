# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

from __future__ import annotations

from typing import Any, Dict, Final, Tuple

import attr

import cocotb
from cocotb.triggers import Timer

from .device import BitbangDevice

SigObj = Any

Fsys_clk_mhz: Final = 100
clkper_ns: Final = 1_000 / Fsys_clk_mhz
settle_ns: Final = 1

SIG_NAMES: Final = {
    'clk': 'sys_clk',
    'rst': 'sys_rst',
    'tck': 'io_jtag_TCK',
    'tms': 'io_jtag_TMS',
    'tdi': 'io_jtag_TDI',
    'tdo': 'io_jtag_TDO',
    'led1': 'io_led1',
    'led2': 'io_led2',
}


@attr.s(auto_attribs=True)
class TopSigs:
    clk: SigObj
    rst: SigObj

    tck: SigObj
    tms: SigObj
    tdi: SigObj
    tdo: SigObj

    led1: SigObj
    led2: SigObj

    @classmethod
    def from_dut(cls, dut, names: Dict[str, str] = SIG_NAMES) -> TopSigs:
        return cls(**{k: getattr(dut, v) for k, v in names.items()})


class CocotbDevice(BitbangDevice):
    """TopMain running under a cocotb-hosted simulator.

    Must be driven from a thread started with cocotb.bridge(); every method
    resumes the simulator for the duration of the call.
    """

    def __init__(self, sigs: TopSigs, log=None):
        self.sigs = sigs
        self.log = log
        self.finalized = False

    @classmethod
    def from_dut(cls, dut) -> CocotbDevice:
        return cls(TopSigs.from_dut(dut), log=dut._log)

    @cocotb.resume
    async def set_inputs(self, tck: bool, tms: bool, tdi: bool) -> None:
        self.sigs.tck.value = int(tck)
        self.sigs.tms.value = int(tms)
        self.sigs.tdi.value = int(tdi)

    @cocotb.resume
    async def evaluate(self) -> None:
        await Timer(settle_ns, 'ns')

    @cocotb.resume
    async def get_tdo(self) -> bool:
        return str(self.sigs.tdo.value) == '1'

    @cocotb.resume
    async def get_leds(self) -> Tuple[int, int]:
        return self.sigs.led1.value.to_unsigned(), self.sigs.led2.value.to_unsigned()

    @cocotb.resume
    async def set_reset(self, active: bool) -> None:
        self.sigs.rst.value = int(active)

    @cocotb.resume
    async def step_sys_clk(self) -> None:
        self.sigs.clk.value = 0
        await Timer(clkper_ns / 2, 'ns')
        self.sigs.clk.value = 1
        await Timer(clkper_ns / 2, 'ns')

    def finalize(self) -> None:
        if self.log is not None:
            self.log.info('device finalized')
        self.finalized = True
