# Copyright (c) 2021 Jevin Sweval <jevinsweval@gmail.com>
# SPDX-License-Identifier: BSD-2-Clause

from __future__ import annotations

import logging
import socket
from enum import Enum
from typing import Final, Optional, Tuple

import attr

from .device import BitbangDevice
from .protocol import HOST, PORT, Command, JTAGSigs, Op, decode

log = logging.getLogger(__name__)

BACKLOG: Final = 3


class State(Enum):
    AWAITING_CONNECTION = 'awaiting connection'
    SERVING = 'serving'
    TERMINATED = 'terminated'


class ReadStatus(Enum):
    BYTE = 'byte'
    DISCONNECTED = 'disconnected'
    ERROR = 'error'


@attr.s(auto_attribs=True, frozen=True)
class ReadResult:
    status: ReadStatus
    code: int = 0
    error: Optional[OSError] = None


def read_cmd(conn: socket.socket) -> ReadResult:
    try:
        data = conn.recv(1)
    except OSError as e:
        return ReadResult(ReadStatus.ERROR, error=e)
    if not data:
        return ReadResult(ReadStatus.DISCONNECTED)
    return ReadResult(ReadStatus.BYTE, code=data[0])


class Bridge:
    """Owns the device from startup until finalize().

    Applies decoded commands to the device and answers read-backs. Survives any
    number of sessions; nothing here is reset when a client goes away.
    """

    def __init__(self, device: BitbangDevice):
        self.device = device
        self.leds = device.get_leds()
        self.finalized = False
        log.info('Initial LED state -> LED1: 0x%02x, LED2: 0x%02x', *self.leds)

    def drive(self, sigs: JTAGSigs) -> None:
        self.device.set_inputs(tck=sigs.tck, tms=sigs.tms, tdi=sigs.tdi)
        self.device.evaluate()
        leds = self.device.get_leds()
        if leds != self.leds:
            log.info('LED update -> LED1: 0x%02x, LED2: 0x%02x', *leds)
            self.leds = leds

    def readback(self) -> bytes:
        return b'1' if self.device.get_tdo() else b'0'

    def handle(self, cmd: Command, conn: socket.socket) -> State:
        if cmd.op is Op.QUIT:
            log.info('Quit requested')
            return State.TERMINATED
        if cmd.op is Op.SET_SIGNALS:
            self.drive(cmd.sigs)
        elif cmd.op is Op.READ_TDO:
            try:
                conn.sendall(self.readback())
            except OSError as e:
                log.warning('Write failed: %s', e)
                return State.AWAITING_CONNECTION
        elif not cmd.known:
            log.warning('Ignoring unexpected command byte 0x%02x', cmd.code)
        else:
            log.debug('Ignoring %s', cmd.name)
        return State.SERVING

    def serve(self, conn: socket.socket) -> State:
        """Serve one session, returning the state to move to when it ends."""
        while True:
            res = read_cmd(conn)
            if res.status is ReadStatus.DISCONNECTED:
                return State.AWAITING_CONNECTION
            if res.status is ReadStatus.ERROR:
                log.warning('Read failed: %s', res.error)
                return State.AWAITING_CONNECTION
            state = self.handle(decode(res.code), conn)
            if state is not State.SERVING:
                return state

    def replay(self, commands: bytes) -> Tuple[State, bytes]:
        """Serve a canned command stream over a socketpair.

        The stream ends with EOF unless it contains a quit. Returns the state
        the session ended in and every byte written back.
        """
        host, target = socket.socketpair()
        with host:
            with target:
                host.sendall(commands)
                host.shutdown(socket.SHUT_WR)
                state = self.serve(target)
                # drop whatever follows a quit so the close is not a reset
                while target.recv(4096):
                    pass
            rsp = b''
            while True:
                chunk = host.recv(4096)
                if not chunk:
                    break
                rsp += chunk
        return state, rsp

    def finalize(self) -> None:
        if not self.finalized:
            self.device.finalize()
            self.finalized = True


class BitbangServer:
    def __init__(self, bridge: Bridge, host: str = HOST, port: int = PORT, backlog: int = BACKLOG):
        self.bridge = bridge
        self.host = host
        self.port = port
        self.backlog = backlog
        self.sock: Optional[socket.socket] = None
        self.state = State.AWAITING_CONNECTION
        self.sessions = 0

    def listen(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except OSError:
            sock.close()
            raise
        self.sock = sock

    @property
    def address(self) -> Tuple[str, int]:
        return self.sock.getsockname()

    def run(self) -> State:
        if self.sock is None:
            raise RuntimeError('listen() must be called before run()')
        while self.state is not State.TERMINATED:
            log.info('Waiting for OpenOCD connection on port %d...', self.address[1])
            conn, addr = self.sock.accept()
            self.state = State.SERVING
            self.sessions += 1
            if self.sessions == 1:
                log.info('OpenOCD connected from %s:%d', *addr[:2])
            else:
                log.info('OpenOCD re-connected from %s:%d', *addr[:2])
            with conn:
                self.state = self.bridge.serve(conn)
            if self.state is State.AWAITING_CONNECTION:
                log.info('Connection closed')
        self.bridge.finalize()
        return self.state

    def close(self) -> None:
        if self.sock is not None:
            self.sock.close()
            self.sock = None

    def __enter__(self) -> BitbangServer:
        self.listen()
        return self

    def __exit__(self, *exc) -> None:
        self.close()
