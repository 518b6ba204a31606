import socket
import threading

import pytest

from litebitbang.device import reset_sequence
from litebitbang.server import BitbangServer, Bridge
from litebitbang.tap_model import TAPModel


class RecordingModel(TAPModel):
    """TAPModel that keeps a log of every adapter call."""

    def __init__(self, *args, **kwargs):
        self.calls = []
        super().__init__(*args, **kwargs)

    def set_inputs(self, tck, tms, tdi):
        self.calls.append(('set_inputs', bool(tck), bool(tms), bool(tdi)))
        super().set_inputs(tck, tms, tdi)

    def evaluate(self):
        self.calls.append(('evaluate',))
        super().evaluate()

    def set_reset(self, active):
        self.calls.append(('set_reset', bool(active)))
        super().set_reset(active)

    def step_sys_clk(self):
        self.calls.append(('step_sys_clk',))
        super().step_sys_clk()

    def finalize(self):
        self.calls.append(('finalize',))
        super().finalize()


@pytest.fixture
def model():
    dev = RecordingModel()
    reset_sequence(dev)
    dev.calls.clear()
    return dev


@pytest.fixture
def bridge(model):
    return Bridge(model)


@pytest.fixture
def server(bridge):
    srv = BitbangServer(bridge, host='127.0.0.1', port=0)
    srv.listen()
    thread = threading.Thread(target=srv.run, daemon=True)
    thread.start()
    yield srv
    if thread.is_alive():
        # unblock accept() with a quitting client
        with socket.create_connection(srv.address) as conn:
            conn.sendall(b'Q')
        thread.join(timeout=5)
    srv.close()
