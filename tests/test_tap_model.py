from litebitbang.client import RESET_TMS, dr_commands, idcode_commands, ir_commands, tdo_value, tms_commands
from litebitbang.device import reset_sequence
from litebitbang.server import Bridge, State
from litebitbang.tap_model import (IDCODE, IR_CAPTURE, IR_LEN, LEDS_LEN, OP_BYPASS, OP_IDCODE, OP_LEDS,
                                   NEXT_STATE, TAPModel, TAPState, shift_in)


def test_next_state_table_covers_all_states():
    assert set(NEXT_STATE) == set(TAPState)
    # five TMS=1 clocks reach Test-Logic-Reset from anywhere
    for state in TAPState:
        for _ in range(5):
            state = NEXT_STATE[state][1]
        assert state is TAPState.TEST_LOGIC_RESET


def test_shift_in():
    assert shift_in(0b0001, True, 4) == 0b1000
    assert shift_in(0b1010, False, 4) == 0b0101
    assert shift_in(0xff, True, 1) == 1


def test_state_changes_on_rising_edge_only():
    dev = TAPModel()
    dev.set_inputs(tck=False, tms=False, tdi=False)
    dev.evaluate()
    assert dev.state is TAPState.TEST_LOGIC_RESET
    dev.set_inputs(tck=True, tms=False, tdi=False)
    dev.evaluate()
    assert dev.state is TAPState.RUN_TEST_IDLE
    # repeated evaluation with the same inputs is not another edge
    dev.evaluate()
    assert dev.state is TAPState.RUN_TEST_IDLE


def test_reset_holds_tap():
    dev = TAPModel()
    Bridge(dev).replay(tms_commands((0, 1, 1)))
    assert dev.state is TAPState.SELECT_IR_SCAN
    dev.set_reset(True)
    dev.set_inputs(tck=True, tms=False, tdi=False)
    dev.evaluate()
    assert dev.state is TAPState.TEST_LOGIC_RESET
    dev.set_reset(False)


def test_read_idcode():
    dev = TAPModel()
    state, rsp = Bridge(dev).replay(idcode_commands())
    assert state is State.AWAITING_CONNECTION
    assert len(rsp) == 32
    assert tdo_value(rsp) == IDCODE


def test_custom_idcode():
    dev = TAPModel(idcode=0x0310_50DD)
    _, rsp = Bridge(dev).replay(idcode_commands())
    assert tdo_value(rsp) == 0x0310_50DD


def test_ir_capture_and_update():
    dev = TAPModel()
    _, rsp = Bridge(dev).replay(tms_commands((1, 1, 1, 1, 1, 0)) + ir_commands(OP_BYPASS, IR_LEN))
    assert tdo_value(rsp) == IR_CAPTURE
    assert dev.ir == OP_BYPASS
    assert dev.state is TAPState.RUN_TEST_IDLE


def test_bypass_delays_one_bit():
    dev = TAPModel()
    bridge = Bridge(dev)
    bridge.replay(tms_commands((1, 1, 1, 1, 1, 0)) + ir_commands(OP_BYPASS, IR_LEN))
    _, rsp = bridge.replay(dr_commands(0b1011, 4))
    # captured 0 first, then TDI delayed by one clock
    assert tdo_value(rsp) == 0b0110


def test_unknown_opcode_is_bypass():
    dev = TAPModel()
    bridge = Bridge(dev)
    bridge.replay(tms_commands((1, 1, 1, 1, 1, 0)) + ir_commands(0b0101, IR_LEN))
    assert dev.dr_len == 1


def test_leds_register():
    dev = TAPModel()
    bridge = Bridge(dev)
    bridge.replay(tms_commands((1, 1, 1, 1, 1, 0)) + ir_commands(OP_LEDS, IR_LEN) + dr_commands(0x12F0, LEDS_LEN))
    assert dev.get_leds() == (0xF0, 0x12)
    _, rsp = bridge.replay(dr_commands(0, LEDS_LEN))
    assert tdo_value(rsp) == 0x12F0


def test_test_logic_reset_restores_idcode_keeps_leds():
    dev = TAPModel()
    bridge = Bridge(dev)
    bridge.replay(tms_commands((1, 1, 1, 1, 1, 0)) + ir_commands(OP_LEDS, IR_LEN) + dr_commands(0x0101, LEDS_LEN))
    _, rsp = bridge.replay(idcode_commands())
    assert dev.ir == OP_IDCODE
    assert tdo_value(rsp) == IDCODE
    assert dev.get_leds() == (0x01, 0x01)


def test_sys_clk_counts_cycles():
    dev = TAPModel()
    for _ in range(3):
        dev.step_sys_clk()
    assert dev.cycles == 3
    assert dev.time == 6


def test_leds_written_right_after_reset_and_kept_across_sessions():
    dev = TAPModel()
    reset_sequence(dev)
    bridge = Bridge(dev)
    state, _ = bridge.replay(tms_commands(RESET_TMS) + ir_commands(OP_LEDS, IR_LEN) + dr_commands(0xA55A, LEDS_LEN))
    assert state is State.AWAITING_CONNECTION
    assert bridge.leds == (0x5A, 0xA5)
    state, rsp = bridge.replay(dr_commands(0, LEDS_LEN) + b'Q')
    assert state is State.TERMINATED
    assert tdo_value(rsp) == 0xA55A
