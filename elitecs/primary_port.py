"""Client for the robot primary port."""

from __future__ import annotations

import ipaddress
import logging
import select
import socket
import struct
import threading
import time
from typing import Callable, Dict, Optional

from .exceptions import EliteException, ErrorCode
from .primary_package import PrimaryPackage
from .robot_exception import ExceptionType, RobotException, parse_robot_exception

logger = logging.getLogger(__name__)

RobotExceptionCallback = Callable[[RobotException], None]

_HEAD = struct.Struct(">IB")


def _recv_exact(sock: socket.socket, size: int) -> bytes:
    buffer = bytearray()
    while len(buffer) < size:
        chunk = sock.recv(size - len(buffer))
        if not chunk:
            raise ConnectionError("connection closed by robot")
        buffer.extend(chunk)
    return bytes(buffer)


class PrimaryPort:
    """Connection to the robot primary port.

    A background thread receives messages, fills in requested sub-packages
    and reports robot exceptions to a registered callback.
    """

    PRIMARY_PORT = 30001
    HEAD_LENGTH = 5
    ROBOT_STATE_MSG_TYPE = 16
    ROBOT_EXCEPTION_MSG_TYPE = 20

    _IO_TIMEOUT = 0.5
    _LOOP_PERIOD = 0.01

    def __init__(self) -> None:
        self._socket_lock = threading.Lock()
        self._sock: Optional[socket.socket] = None
        self._packages_lock = threading.Lock()
        self._pending: Dict[int, PrimaryPackage] = {}
        self._thread: Optional[threading.Thread] = None
        self._alive = False
        self._exception_cb: Optional[RobotExceptionCallback] = None

    def __enter__(self) -> "PrimaryPort":
        return self

    def __exit__(self, *args) -> None:
        self.disconnect()

    def connect(self, ip: str, port: int = PRIMARY_PORT) -> bool:
        """Connect and start the receiving thread; False if the connection failed.

        Calling this again without disconnect() replaces the active connection.
        """
        if not self._socket_connect(ip, port, report=False):
            return False
        with self._socket_lock:
            if self._thread is None:
                self._alive = True
                self._thread = threading.Thread(
                    target=self._loop, args=(ip, port), name="primary-port", daemon=True
                )
                self._thread.start()
        return True

    def disconnect(self) -> None:
        """Stop the receiving thread and close the connection."""
        self._alive = False
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None
        with self._socket_lock:
            self._close_socket()

    def send_script(self, script: str) -> bool:
        """Send a script program to the robot; False if it could not be sent."""
        with self._socket_lock:
            if self._sock is None:
                logger.error("Don't connect to robot primary port")
                return False
            try:
                self._sock.sendall((script + "\n").encode("utf-8"))
            except OSError as exc:
                logger.error("Send script to robot fail: %s", exc)
                return False
            return True

    def get_package(self, package: PrimaryPackage, timeout: float) -> bool:
        """Ask for the next sub-package of the package's type and wait up to ``timeout`` seconds."""
        with self._packages_lock:
            self._pending.setdefault(package.package_type, package)
        return package.wait_update(timeout)

    def local_ip(self) -> str:
        """The local address of the connection, or an empty string if not connected."""
        with self._socket_lock:
            if self._sock is None:
                return ""
            try:
                return self._sock.getsockname()[0]
            except OSError:
                return ""

    def register_robot_exception_callback(self, callback: Optional[RobotExceptionCallback]) -> None:
        """Call ``callback`` with every robot exception that arrives."""
        self._exception_cb = callback

    def _close_socket(self) -> None:
        if self._sock is None:
            return
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._sock.close()
        self._sock = None

    def _socket_connect(self, ip: str, port: int, report: bool) -> bool:
        try:
            ipaddress.ip_address(ip)
        except ValueError as exc:
            raise EliteException(ErrorCode.SOCKET_CONNECT_FAIL, str(exc)) from exc
        with self._socket_lock:
            self._close_socket()
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            try:
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 0)
                if hasattr(socket, "TCP_QUICKACK"):
                    sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_QUICKACK, 1)
                sock.settimeout(self._IO_TIMEOUT)
                sock.connect((ip, port))
            except OSError as exc:
                sock.close()
                if report:
                    logger.error("Connect to robot primary port fail: %s", exc)
                return False
            self._sock = sock
        return True

    def _parse_message(self) -> bool:
        with self._socket_lock:
            sock = self._sock
            if sock is None:
                return False
            try:
                readable, _, _ = select.select([sock], [], [], 0)
            except (OSError, ValueError):
                return False
            if not readable:
                return True
            try:
                head = _recv_exact(sock, self.HEAD_LENGTH)
            except OSError as exc:
                logger.error("Primary port receive package head had exception: %s", exc)
                return False
            length, msg_type = _HEAD.unpack(head)
            if length <= self.HEAD_LENGTH:
                logger.error("Primary port package len error: %d", length)
                return False
            try:
                body = _recv_exact(sock, length - self.HEAD_LENGTH)
            except OSError as exc:
                logger.error("Primary port receive package body had exception: %s", exc)
                return False
        self._dispatch(msg_type, body)
        return True

    def _dispatch(self, msg_type: int, body: bytes) -> None:
        if msg_type == self.ROBOT_STATE_MSG_TYPE:
            pos = 0
            while pos + _HEAD.size <= len(body):
                sub_len, sub_type = _HEAD.unpack_from(body, pos)
                if sub_len == 0:
                    break
                with self._packages_lock:
                    package = self._pending.get(sub_type)
                    if package is not None:
                        package.parse(body[pos:pos + sub_len])
                        package.notify_updated()
                        del self._pending[sub_type]
                pos += sub_len
        elif msg_type == self.ROBOT_EXCEPTION_MSG_TYPE:
            callback = self._exception_cb
            if callback is not None:
                event = parse_robot_exception(body)
                if event is not None:
                    callback(event)

    def _loop(self, ip: str, port: int) -> None:
        last_connect_ok = True
        while self._alive:
            try:
                if not self._parse_message() and self._alive:
                    callback = self._exception_cb
                    if callback is not None and last_connect_ok:
                        callback(
                            RobotException(
                                timestamp=int(time.time() * 1000),
                                type=ExceptionType.ROBOT_DISCONNECTED,
                            )
                        )
                    last_connect_ok = self._socket_connect(ip, port, report=last_connect_ok)
            except Exception as exc:  # keep the receiving thread running
                logger.error("Primary port async loop raised: %s", exc)
            time.sleep(self._LOOP_PERIOD)