# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

import os
from typing import Final

import cocotb

from litebitbang.client import RESET_TMS, dr_commands, idcode_commands, ir_commands, tdo_value, tms_commands
from litebitbang.cocotb_device import CocotbDevice
from litebitbang.device import reset_sequence
from litebitbang.server import BitbangServer, Bridge, State
from litebitbang.tap_model import IDCODE, IR_LEN, LEDS_LEN, OP_LEDS

idcode: Final = int(os.environ.get('LITEBITBANG_IDCODE', hex(IDCODE)), 0)
serve_port: Final = os.environ.get('LITEBITBANG_SERVE_PORT')


def start(dev: CocotbDevice) -> Bridge:
    reset_sequence(dev)
    return Bridge(dev)


@cocotb.test()
async def reset_and_read_idcode(dut):
    dev = CocotbDevice.from_dut(dut)
    bridge = await cocotb.bridge(start)(dev)

    state, rsp = await cocotb.bridge(bridge.replay)(idcode_commands() + b'Q')
    got = tdo_value(rsp)
    dut._log.info(f'idcode: 0x{got:08x}')
    assert state is State.TERMINATED
    assert got == idcode


@cocotb.test()
async def leds_survive_reconnect(dut):
    dev = CocotbDevice.from_dut(dut)
    bridge = await cocotb.bridge(start)(dev)

    state, _ = await cocotb.bridge(bridge.replay)(
        tms_commands(RESET_TMS) + ir_commands(OP_LEDS, IR_LEN) + dr_commands(0xA55A, LEDS_LEN))
    assert state is State.AWAITING_CONNECTION
    assert bridge.leds == (0x5A, 0xA5)

    # second session, no reset in between
    state, rsp = await cocotb.bridge(bridge.replay)(dr_commands(0, LEDS_LEN) + b'Q')
    assert state is State.TERMINATED
    assert tdo_value(rsp) == 0xA55A


@cocotb.test(skip=serve_port is None)
async def serve(dut):
    dev = CocotbDevice.from_dut(dut)

    def serve_forever() -> State:
        bridge = start(dev)
        with BitbangServer(bridge, port=int(serve_port)) as server:
            return server.run()

    state = await cocotb.bridge(serve_forever)()
    assert state is State.TERMINATED
    assert dev.finalized
