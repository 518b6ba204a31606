#!/usr/bin/env python3

# Copyright (c) 2020 Florent Kermarrec <florent@enjoy-digital.fr>
# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

from __future__ import annotations

import argparse
from typing import Final

from migen import *
from migen.fhdl import verilog

from litebitbang.tap_model import TAPState, IR_LEN, IR_CAPTURE, OP_IDCODE, OP_LEDS, IDCODE, IDCODE_LEN, LEDS_LEN

TOP_NAME: Final = 'TopMain'


class StdTAPFSM(Module):
    def __init__(self, tms: Signal):
        T = tms
        self.A = A = Signal(1, reset=1)
        self.B = B = Signal(1, reset=1)
        self.C = C = Signal(1, reset=1)
        self.D = D = Signal(1, reset=1)

        self.state = state = Signal(4, reset_less=True)
        self.comb += state.eq(Cat(A, B, C, D))

        # From IEEE 1149.1-2013 6.1.2.2 pg 36 (pdf page 58)
        #
        # ND := DC* + DB + T*CB* + D*CB*A*
        # NC := CB* + CA + TB*
        # NB := T*BA* + T*C* + T*D*B + T*D*A* + TCB* + TDCA
        # NA := T*C*A + TB* + TA* + TDC
        # where
        # T = value present at TMS
        self.sync.jtag += [
            D.eq((D & ~C) | (D & B) | (~T & C & ~B) | (~D & C & ~B & ~A)),
            C.eq((C & ~B) | (C & A) | (T & ~B)),
            B.eq((~T & B & ~A) | (~T & ~C) | (~T & ~D & B) | (~T & ~D & ~A) | (T & C & ~B) | (T & D & C & A)),
            A.eq((~T & ~C & A) | (T & ~B) | (T & ~A) | (T & D & C)),
        ]

        for st in TAPState:
            flag = Signal(name=st.name)
            self.comb += flag.eq(state == st.value)
            setattr(self, st.name, flag)


class JTAGTAP(Module):
    def __init__(self, tms: Signal, tdi: Signal, tdo: Signal, led1: Signal, led2: Signal, idcode: int = IDCODE):
        self.submodules.fsm = fsm = StdTAPFSM(tms)

        self.ir = ir = Signal(IR_LEN, reset=OP_IDCODE)
        self.ir_shift = ir_shift = Signal(IR_LEN)
        self.dr = dr = Signal(IDCODE_LEN)

        self.sync.jtag += [
            If(fsm.TEST_LOGIC_RESET,
                ir.eq(ir.reset),
            ).Elif(fsm.UPDATE_IR,
                ir.eq(ir_shift),
            ),
            If(fsm.CAPTURE_IR,
                ir_shift.eq(IR_CAPTURE),
            ).Elif(fsm.SHIFT_IR,
                ir_shift.eq(Cat(ir_shift[1:], tdi)),
            ),
            If(fsm.CAPTURE_DR,
                Case(ir, {
                    OP_IDCODE: dr.eq(idcode),
                    OP_LEDS: dr.eq(Cat(led1, led2)),
                    'default': dr.eq(0),
                }),
            ).Elif(fsm.SHIFT_DR,
                Case(ir, {
                    OP_IDCODE: dr.eq(Cat(dr[1:IDCODE_LEN], tdi)),
                    OP_LEDS: dr.eq(Cat(dr[1:LEDS_LEN], tdi)),
                    'default': dr.eq(tdi),
                }),
            ).Elif(fsm.UPDATE_DR & (ir == OP_LEDS),
                led1.eq(dr[:8]),
                led2.eq(dr[8:16]),
            ),
        ]

        self.tdo_pre = tdo_pre = Signal()
        self.comb += [
            If(fsm.SHIFT_DR,
                tdo_pre.eq(dr[0]),
            ).Elif(fsm.SHIFT_IR,
                tdo_pre.eq(ir_shift[0]),
            )
        ]

        self.sync.jtag_inv += tdo.eq(tdo_pre)


class TopMain(Module):
    def __init__(self, idcode: int = IDCODE):
        self.tck = tck = Signal(name='io_jtag_TCK')
        self.tms = tms = Signal(name='io_jtag_TMS')
        self.tdi = tdi = Signal(name='io_jtag_TDI')
        self.tdo = tdo = Signal(name='io_jtag_TDO')
        self.led1 = led1 = Signal(8, name='io_led1')
        self.led2 = led2 = Signal(8, name='io_led2')

        self.clock_domains.cd_sys = cd_sys = ClockDomain('sys')

        self.clock_domains.cd_jtag = ClockDomain('jtag')
        self.comb += ClockSignal('jtag').eq(tck)
        self.comb += ResetSignal('jtag').eq(ResetSignal('sys'))

        self.clock_domains.cd_jtag_inv = ClockDomain('jtag_inv')
        self.comb += ClockSignal('jtag_inv').eq(~tck)
        self.comb += ResetSignal('jtag_inv').eq(ResetSignal('sys'))

        # # #

        self.submodules.tap = JTAGTAP(tms, tdi, tdo, led1, led2, idcode=idcode)

        self.ios = {tck, tms, tdi, tdo, led1, led2, cd_sys.clk, cd_sys.rst}


def convert(idcode: int = IDCODE):
    top = TopMain(idcode=idcode)
    return verilog.convert(top, ios=top.ios, name=TOP_NAME)


def main():
    parser = argparse.ArgumentParser(description="Dump the TopMain Verilog")
    parser.add_argument("--idcode", default=IDCODE, type=lambda s: int(s, 0), help="IDCODE register value")
    parser.add_argument("--output", default=None,                             help="Write to a file instead of stdout")
    args = parser.parse_args()

    conv = convert(idcode=args.idcode)
    if args.output is None:
        print(conv)
    else:
        conv.write(args.output)


if __name__ == "__main__":
    main()
