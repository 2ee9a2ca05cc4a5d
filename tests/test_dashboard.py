import socket
import threading

import pytest

from elitecs.dashboard import DashboardClient, RobotMode, SafetyMode, TaskStatus
from elitecs.exceptions import EliteException, ErrorCode


class FakeDashboard:
    """A dashboard server answering each command line through ``handler``."""

    def __init__(self, handler, greeting="Connected: Dashboard Server\r\n"):
        self._handler = handler
        self._greeting = greeting
        self._listener = socket.create_server(("127.0.0.1", 0))
        self.port = self._listener.getsockname()[1]
        self.commands = []
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        try:
            conn, _ = self._listener.accept()
        except OSError:
            return
        with conn:
            conn.sendall(self._greeting.encode())
            with conn.makefile("rb") as reader:
                for raw in reader:
                    cmd = raw.decode().rstrip("\n")
                    self.commands.append(cmd)
                    reply = self._handler(cmd)
                    if reply is None:
                        return
                    conn.sendall(reply.encode())

    def close(self):
        self._listener.close()


class SimRobot:
    def __init__(self):
        self.mode = "POWER_OFF"
        self.task = "stopped"
        self.task_path = "none.task"
        self.config = "old.configuration"
        self.speed = 100
        self.logs = []

    def __call__(self, cmd):
        if cmd == "robotControl -on":
            self.mode = "IDLE"
            return "Powering on\r\n"
        if cmd == "robotControl -off":
            self.mode = "POWER_OFF"
            return "Powering off\r\n"
        if cmd == "brakeRelease":
            self.mode = "RUNNING"
            return "Brake Releasing\r\n"
        if cmd == "robotMode":
            return f"robotMode: {self.mode}\r\n"
        if cmd == "play":
            self.task = "running"
            return "Starting task\r\n"
        if cmd == "pause":
            self.task = "paused"
            return "Pausing task\r\n"
        if cmd == "stop":
            self.task = "stopped"
            return "Stopping task\r\n"
        if cmd == "task -s":
            return f"Task is {self.task}\r\n"
        if cmd.startswith("task -p "):
            self.task_path = cmd[len("task -p "):]
            return f"Loaded task: {self.task_path}\r\n"
        if cmd == "task":
            return f"Relative path:{self.task_path}\r\n"
        if cmd.startswith("configuration -p "):
            self.config = cmd[len("configuration -p "):]
            return f"Loading Configuration : {self.config}\r\n"
        if cmd == "configuration":
            return f"configuration: Relative path:{self.config}\r\n"
        if cmd.startswith("log -a "):
            self.logs.append(cmd[len("log -a "):])
            return "Log has been added.\r\n"
        if cmd == "version":
            return "2.14.0\r\n"
        if cmd == "echo":
            return "Hello ELITE ROBOTS.\r\n"
        if cmd == "closeSafetyDialog":
            return "closing safety dialog\r\n"
        if cmd.startswith("speed -v "):
            self.speed = int(cmd[len("speed -v "):])
            return "Speed set\r\n"
        if cmd == "status":
            return f"Target Speed Fraction: {self.speed}\r\n"
        return "Unknown command\r\n"


@pytest.fixture
def robot():
    return SimRobot()


@pytest.fixture
def server(robot):
    fake = FakeDashboard(robot)
    yield fake
    fake.close()


@pytest.fixture
def client(server):
    dashboard = DashboardClient()
    assert dashboard.connect("127.0.0.1", server.port)
    yield dashboard
    dashboard.disconnect()


def connect_with(replies):
    fake = FakeDashboard(lambda cmd: replies[cmd])
    dashboard = DashboardClient()
    assert dashboard.connect("127.0.0.1", fake.port)
    return fake, dashboard


def test_connect(client):
    assert client.close_safety_dialog() is True
    assert client.echo() is True


def test_run_program(client, robot, server):
    assert client.load_task("wait_program.task")
    assert robot.task_path == "wait_program.task"
    assert client.power_off()
    assert client.power_on()
    assert robot.mode == "IDLE"
    assert client.brake_release()
    assert client.play_program()
    assert client.pause_program()
    assert client.play_program()
    assert client.stop_program()
    assert client.power_off()
    assert robot.mode == "POWER_OFF"
    assert "brakeRelease" in server.commands


def test_load_configuration(client, robot):
    assert client.load_configuration("default.configuration")
    assert client.configuration_path() == "default.configuration"


def test_log_and_getters(client, robot):
    assert client.log("Testing Log:")
    msg = client.version()
    assert msg == "2.14.0\r\n"
    assert client.log("Version: " + msg)
    assert client.robot_mode() == RobotMode.POWER_OFF
    assert client.get_task_path() == "none.task"
    assert client.stop_program()
    assert client.get_task_status() == TaskStatus.STOPPED
    assert robot.logs[0] == "Testing Log:"
    assert robot.logs[1] == "Version: 2.14.0\\r\\n"


def test_log_escapes_line_breaks(client, robot):
    assert client.log("a\nb\rc")
    assert robot.logs == ["a\\nb\\rc"]


def test_speed_scaling_round_trip(client, robot):
    assert client.set_speed_scaling(42) is True
    assert client.speed_scaling() == 42


def test_unexpected_reply_raises():
    fake, dashboard = connect_with({"echo": "nope\r\n"})
    try:
        with pytest.raises(EliteException) as info:
            dashboard.echo()
        assert info.value == ErrorCode.DASHBOARD_NOT_EXPECT_RECIVE
    finally:
        dashboard.disconnect()
        fake.close()


def test_not_connected_returns_empty():
    dashboard = DashboardClient()
    assert dashboard.echo() is False
    assert dashboard.version() == ""


def test_send_and_receive_without_connection_raises():
    with pytest.raises(EliteException) as info:
        DashboardClient().send_and_receive("echo")
    assert info.value.code is ErrorCode.SOCKET_FAIL


def test_popup_illegal_argument():
    with pytest.raises(EliteException) as info:
        DashboardClient().popup("-x", "hi")
    assert info.value.code is ErrorCode.ILLEGAL_PARAM


def test_popup_commands():
    replies = {"popup -shello": "Showing popup with text: hello\r\n", "popup -c": "Closing popup\r\n"}
    fake, dashboard = connect_with(replies)
    try:
        assert dashboard.popup("-s", "hello") is True
        assert dashboard.popup("-c") is True
        assert fake.commands == ["popup -shello", "popup -c"]
    finally:
        dashboard.disconnect()
        fake.close()


def test_invalid_ip_raises():
    with pytest.raises(EliteException) as info:
        DashboardClient().connect("not-an-ip", 29999)
    assert info.value.code is ErrorCode.SOCKET_CONNECT_FAIL


def test_connect_refused_returns_false():
    probe = socket.create_server(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    assert DashboardClient().connect("127.0.0.1", port) is False


def test_send_and_receive_adds_newline():
    fake, dashboard = connect_with({"robot": "CS66\r\n"})
    try:
        assert dashboard.send_and_receive("robot") == "CS66\r\n"
        assert dashboard.robot() == "CS66\r\n"
    finally:
        dashboard.disconnect()
        fake.close()


def test_closed_connection_raises_socket_fail():
    fake = FakeDashboard(lambda cmd: None)
    dashboard = DashboardClient()
    try:
        assert dashboard.connect("127.0.0.1", fake.port)
        with pytest.raises(EliteException) as info:
            dashboard.send_and_receive("echo")
        assert info.value.code is ErrorCode.SOCKET_FAIL
    finally:
        dashboard.disconnect()
        fake.close()


@pytest.mark.parametrize(
    "reply, expected",
    [
        ("BACK_DRIVE", RobotMode.BACKDRIVE),
        ("UPDATING", RobotMode.UPDATING_FIRMWARE),
        ("RUNNING", RobotMode.RUNNING),
        ("NO_CONTROLLER", RobotMode.NO_CONTROLLER),
        ("SOMETHING", RobotMode.UNKNOWN),
    ],
)
def test_robot_mode_mapping(reply, expected):
    fake, dashboard = connect_with({"robotMode": f"robotMode: {reply}\r\n"})
    try:
        assert dashboard.robot_mode() is expected
    finally:
        dashboard.disconnect()
        fake.close()


@pytest.mark.parametrize(
    "reply, expected",
    [
        ("NORMAL", SafetyMode.NORMAL),
        ("PROTECTIVE_STOP", SafetyMode.PROTECTIVE_STOP),
        ("TP_THREE_POSITION_ENABLING_STOP", SafetyMode.TP_THREE_POSITION_ENABLING_STOP),
        ("WHATEVER", SafetyMode.UNKNOWN),
    ],
)
def test_safety_mode_mapping(reply, expected):
    fake, dashboard = connect_with({"safety -s": f"Safety status: {reply}\r\n"})
    try:
        assert dashboard.safety_mode() is expected
    finally:
        dashboard.disconnect()
        fake.close()


@pytest.mark.parametrize(
    "reply, expected",
    [
        ("STOPPED", TaskStatus.STOPPED),
        ("RUNNING", TaskStatus.PLAYING),
        ("PAUSED", TaskStatus.PAUSED),
    ],
)
def test_running_status(reply, expected):
    fake, dashboard = connect_with({"status": f"RunningStatus: {reply}\r\n"})
    try:
        assert dashboard.running_status() is expected
    finally:
        dashboard.disconnect()
        fake.close()


def test_task_queries():
    replies = {
        "task -r": "Task is not running\r\n",
        "task -ss": "Task is saved\r\n",
        "configuration -s": "Configuration is not modified\r\n",
    }
    fake, dashboard = connect_with(replies)
    try:
        assert dashboard.task_is_running() is False
        assert dashboard.is_task_saved() is True
        assert dashboard.is_configuration_modified() is False
    finally:
        dashboard.disconnect()
        fake.close()


def test_quit_disconnects():
    fake, dashboard = connect_with({"quit": "Disconnected\r\n"})
    try:
        dashboard.quit()
        assert dashboard.version() == ""
        assert fake.commands == ["quit"]
    finally:
        fake.close()


def test_safety_system_restart():
    replies = {"safety -r": "Restarting safety board\r\n", "safety -m": "Safety mode: NORMAL\r\n"}
    fake, dashboard = connect_with(replies)
    try:
        assert dashboard.safety_system_restart() is True
    finally:
        dashboard.disconnect()
        fake.close()