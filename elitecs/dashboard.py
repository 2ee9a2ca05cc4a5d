"""Client for the robot dashboard shell server."""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
import threading
import time
from enum import Enum, auto
from typing import Optional

from .exceptions import EliteException, ErrorCode

logger = logging.getLogger(__name__)

# A wildcard that, like the controller's own patterns, stops at line ends.
_ANY = r"[^\r\n]*"


class RobotMode(Enum):
    """Robot mode as reported by the dashboard."""

    UNKNOWN = auto()
    NO_CONTROLLER = auto()
    DISCONNECTED = auto()
    CONFIRM_SAFETY = auto()
    BOOTING = auto()
    POWER_OFF = auto()
    POWER_ON = auto()
    IDLE = auto()
    BACKDRIVE = auto()
    RUNNING = auto()
    UPDATING_FIRMWARE = auto()
    WAITING_CALIBRATION = auto()


class SafetyMode(Enum):
    """Safety mode as reported by the dashboard."""

    UNKNOWN = auto()
    NORMAL = auto()
    REDUCED = auto()
    PROTECTIVE_STOP = auto()
    RECOVERY = auto()
    SAFEGUARD_STOP = auto()
    SYSTEM_EMERGENCY_STOP = auto()
    ROBOT_EMERGENCY_STOP = auto()
    VIOLATION = auto()
    FAULT = auto()
    VALIDATE_JOINT_ID = auto()
    UNDEFINED_SAFETY_MODE = auto()
    AUTOMATIC_MODE_SAFEGUARD_STOP = auto()
    SYSTEM_THREE_POSITION_ENABLING_STOP = auto()
    TP_THREE_POSITION_ENABLING_STOP = auto()


class TaskStatus(Enum):
    """State of the loaded task."""

    STOPPED = auto()
    PLAYING = auto()
    PAUSED = auto()


_ROBOT_MODES = {
    "NO_CONTROLLER": RobotMode.NO_CONTROLLER,
    "DISCONNECTED": RobotMode.DISCONNECTED,
    "CONFIRM_SAFETY": RobotMode.CONFIRM_SAFETY,
    "BOOTING": RobotMode.BOOTING,
    "POWER_OFF": RobotMode.POWER_OFF,
    "POWER_ON": RobotMode.POWER_ON,
    "IDLE": RobotMode.IDLE,
    "BACK_DRIVE": RobotMode.BACKDRIVE,
    "RUNNING": RobotMode.RUNNING,
    "UPDATING": RobotMode.UPDATING_FIRMWARE,
    "WAITING_CALIBRATION": RobotMode.WAITING_CALIBRATION,
}

_SAFETY_MODES = {
    mode.name: mode for mode in SafetyMode if mode is not SafetyMode.UNKNOWN
}

_RELATIVE_PATH = "Relative path:"


def _after_colon(text: str) -> str:
    _, sep, rest = text.partition(": ")
    return rest if sep else text[1:]


class DashboardClient:
    """A line-oriented connection to the dashboard shell server."""

    DASHBOARD_PORT = 29999

    _WAIT_PERIOD = 0.1
    _WAIT_TIMEOUT = 30.0

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sock: Optional[socket.socket] = None
        self._buffer = bytearray()

    def __enter__(self) -> "DashboardClient":
        return self

    def __exit__(self, *args) -> None:
        self.disconnect()

    # -- connection ---------------------------------------------------------

    def connect(self, ip: str, port: int = DASHBOARD_PORT) -> bool:
        """Connect and read the greeting line; False if the connection failed."""
        try:
            ipaddress.ip_address(ip)
        except ValueError as exc:
            logger.error("Dashboard connect to robot fail: %s", exc)
            raise EliteException(ErrorCode.SOCKET_CONNECT_FAIL, str(exc)) from exc
        with self._lock:
            self._close()
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            try:
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                if hasattr(socket, "TCP_QUICKACK"):
                    sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_QUICKACK, 1)
                sock.connect((ip, port))
            except OSError as exc:
                sock.close()
                logger.error("Dashboard connect to robot fail: %s", exc)
                return False
            self._sock = sock
            self._read_line()
        return True

    def disconnect(self) -> None:
        """Close the connection."""
        with self._lock:
            self._close()

    def _close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None
                self._buffer.clear()

    # -- low level ----------------------------------------------------------

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise EliteException(ErrorCode.SOCKET_FAIL, "dashboard not connected")
        return self._sock

    def _send_command(self, cmd: str) -> None:
        sock = self._require_socket()
        try:
            sock.sendall(cmd.encode("utf-8"))
        except OSError as exc:
            raise EliteException(ErrorCode.SOCKET_FAIL, str(exc)) from exc

    def _read_line(self) -> str:
        sock = self._require_socket()
        while b"\n" not in self._buffer:
            try:
                chunk = sock.recv(4096)
            except OSError as exc:
                raise EliteException(ErrorCode.SOCKET_FAIL, str(exc)) from exc
            if not chunk:
                raise EliteException(ErrorCode.SOCKET_FAIL, "connection closed by robot")
            self._buffer.extend(chunk)
        end = self._buffer.index(b"\n") + 1
        line = bytes(self._buffer[:end])
        del self._buffer[:end]
        return line.decode("utf-8", errors="replace")

    def _send_and_request(self, cmd: str, expected: str = "") -> str:
        with self._lock:
            if self._sock is None:
                logger.error("Dashboard not connect to robot")
                return ""
            self._send_command(cmd)
            response = self._read_line()
        if not expected:
            return response
        match = re.search(expected, response)
        if match is None:
            raise EliteException(
                ErrorCode.DASHBOARD_NOT_EXPECT_RECIVE,
                f'Dashboard command "{cmd}" response expected: {expected}. '
                f"But received: {response}",
            )
        return match.group(0)

    def _wait_for_reply(self, cmd: str, expected: str) -> bool:
        pattern = re.compile(expected)
        waited = 0.0
        while waited < self._WAIT_TIMEOUT:
            if pattern.fullmatch(self._send_and_request(cmd)):
                return True
            time.sleep(self._WAIT_PERIOD)
            waited += self._WAIT_PERIOD
        return False

    # -- commands -----------------------------------------------------------

    def send_and_receive(self, cmd: str) -> str:
        """Send a raw command (a newline is added if missing) and return the reply line."""
        if not cmd.endswith("\n"):
            cmd += "\n"
        with self._lock:
            self._send_command(cmd)
            return self._read_line()

    def brake_release(self) -> bool:
        """Release the brakes and wait until the robot is running."""
        if not self._send_and_request("brakeRelease\n", f"Brake (Releasing{_ANY}|is released){_ANY}"):
            return False
        return self._wait_for_reply("robotMode\n", "robotMode: RUNNING\r\n")

    def close_safety_dialog(self) -> bool:
        return bool(self._send_and_request("closeSafetyDialog\n", f"closing {_ANY} dialog\r\n"))

    def echo(self) -> bool:
        """Check that the dashboard server answers."""
        return bool(self._send_and_request("echo\n", r"Hello ELITE ROBOTS\.\r\n"))

    def help(self, cmd: str) -> str:
        return self._send_and_request(f"help {cmd}\n")

    def log(self, message: str) -> bool:
        """Add a log message; line breaks are sent escaped."""
        escaped = message.replace("\n", "\\n").replace("\r", "\\r")
        return bool(self._send_and_request(f"log -a {escaped}\n", r"Log has been added\.\r\n"))

    def popup(self, arg: str, message: str = "") -> bool:
        """Show (``"-s"``) or close (``"-c"``) a message box."""
        if arg == "-c":
            command = f"popup {arg}\n"
        elif arg == "-s":
            command = f"popup {arg}{message}\n"
        else:
            raise EliteException(ErrorCode.ILLEGAL_PARAM, "dashboard popup command")
        return bool(
            self._send_and_request(command, f"Closing popup\r\n|Showing popup with text:{_ANY}")
        )

    def quit(self) -> None:
        """Quit the dashboard session and disconnect."""
        with self._lock:
            self._send_and_request("quit\n")
            self._close()

    def reboot(self) -> None:
        """Reboot the robot and disconnect."""
        with self._lock:
            self._send_and_request("reboot\n")
            self._close()

    def robot(self) -> str:
        return self._send_and_request("robot\n")

    def power_on(self) -> bool:
        self._send_and_request("robotControl -on\n", "Powering on\r\n")
        return self._wait_for_reply("robotMode\n", "robotMode: (RUNNING|IDLE)\r\n")

    def power_off(self) -> bool:
        self._send_and_request("robotControl -off\n", "Powering off\r\n")
        # The robot needs a moment before reporting the new mode.
        time.sleep(0.5)
        return self._wait_for_reply("robotMode\n", "robotMode: POWER_OFF\r\n")

    def shutdown(self) -> None:
        """Shut the robot down and disconnect."""
        with self._lock:
            self._send_and_request("shutdown\n")
            self._close()

    def speed_scaling(self) -> int:
        """The target speed fraction in percent."""
        response = self._send_and_request("status\n", f"Target Speed Fraction:{_ANY}")
        return int(_after_colon(response))

    def robot_mode(self) -> RobotMode:
        response = self._send_and_request("robotMode\n", f"robotMode:{_ANY}")
        return _ROBOT_MODES.get(_after_colon(response), RobotMode.UNKNOWN)

    def safety_mode(self) -> SafetyMode:
        response = self._send_and_request("safety -s\n", f"Safety status:{_ANY}")
        return _SAFETY_MODES.get(_after_colon(response), SafetyMode.UNKNOWN)

    def safety_system_restart(self) -> bool:
        self._send_and_request("safety -r\n", f"Restarting safety board{_ANY}")
        return self._wait_for_reply("safety -m\n", "Safety mode: NORMAL\r\n")

    def running_status(self) -> TaskStatus:
        status = _after_colon(self._send_and_request("status\n", f"RunningStatus:{_ANY}"))
        if "STOP" in status:
            return TaskStatus.STOPPED
        if "RUNNING" in status:
            return TaskStatus.PLAYING
        if "PAUSE" in status:
            return TaskStatus.PAUSED
        return TaskStatus.STOPPED

    def unlock_protective_stop(self) -> bool:
        return bool(
            self._send_and_request("unlockProtectiveStop\n", r"Protective stop unlocking\.\.\.\r\n")
        )

    def usage(self, cmd: str) -> str:
        return self._send_and_request(f"usage {cmd}\n")

    def version(self) -> str:
        return self._send_and_request("version\n")

    def load_configuration(self, path: str) -> bool:
        if not self._send_and_request(f"configuration -p {path}\n", f"Loading Configuration :{_ANY}"):
            return False
        return self._wait_for_reply(
            "configuration\n", f"configuration: {_RELATIVE_PATH}{re.escape(path)}\r\n"
        )

    def configuration_path(self) -> str:
        response = self._send_and_request("configuration\n", f"configuration: {_RELATIVE_PATH}{_ANY}")
        return response[response.find(_RELATIVE_PATH) + len(_RELATIVE_PATH):]

    def is_configuration_modified(self) -> bool:
        return "not modified" not in self._send_and_request("configuration -s\n")

    def play_program(self) -> bool:
        if self._send_and_request("play\n") != "Starting task\r\n":
            return False
        return self._wait_for_reply("task -s\n", "Task is running\r\n")

    def pause_program(self) -> bool:
        if self._send_and_request("pause\n") != "Pausing task\r\n":
            return False
        return self._wait_for_reply("task -s\n", "Task is paused\r\n")

    def stop_program(self) -> bool:
        if self._send_and_request("stop\n") != "Stopping task\r\n":
            return False
        return self._wait_for_reply("task -s\n", "Task is stopped\r\n")

    def set_speed_scaling(self, scaling: int) -> bool:
        self._send_and_request(f"speed -v {scaling}\n")
        # Give the command time to take effect.
        time.sleep(0.2)
        return self.speed_scaling() == scaling

    def get_task_path(self) -> str:
        """The relative path of the loaded task."""
        response = self._send_and_request("task\n")
        pos = response.find(_RELATIVE_PATH)
        if pos < 0:
            return response
        size = len(_RELATIVE_PATH)
        return response[pos + size:][: max(len(response) - size - 2, 0)]

    def load_task(self, path: str) -> bool:
        self._send_and_request(f"task -p {path}\n", f"Loaded task: {_ANY}")
        return self._wait_for_reply("task\n", f"{_RELATIVE_PATH}{re.escape(path)}\r\n")

    def get_task_status(self) -> TaskStatus:
        status = self._send_and_request("task -s\n", f"Task is {_ANY}")
        if "stopped" in status:
            return TaskStatus.STOPPED
        if "paused" in status:
            return TaskStatus.PAUSED
        if "running" in status:
            return TaskStatus.PLAYING
        return TaskStatus.STOPPED

    def task_is_running(self) -> bool:
        response = self._send_and_request("task -r\n", f"Task is {_ANY}")
        if "not running" in response:
            return False
        return "is running" in response

    def is_task_saved(self) -> bool:
        return self._send_and_request("task -ss\n", f"Task is {_ANY}") == "Task is saved"