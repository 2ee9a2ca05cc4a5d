# elitecs

A Python client for Elite CS series robot controllers. It talks to the
controller over plain TCP sockets and uses nothing outside the standard
library.

## What it covers

- **Dashboard shell** (`elitecs.dashboard.DashboardClient`): power the arm on
  and off, release brakes, load, play, pause and stop tasks, load
  configurations, query robot mode (`RobotMode`), safety mode (`SafetyMode`)
  and task status (`TaskStatus`), read and set speed scaling, write log
  entries, show and close popups, and send raw commands.
- **Primary port** (`elitecs.primary_port.PrimaryPort`): send script code to
  the robot, fetch sub-packages of the robot state stream (such as the DH
  parameters in `elitecs.primary_package.KinematicsInfo`) and receive robot
  exception events through a callback.
- **Robot exception messages** (`elitecs.robot_exception`): the event
  classes `RobotException`, `RobotError` and `RobotRuntimeException`, and
  `parse_robot_exception()` to decode a message body.
- **Version strings** (`elitecs.version.VersionInfo`).
- **Errors** (`elitecs.exceptions.EliteException`, tagged with an
  `ErrorCode`).

## Installation

```
pip install elitecs
```

To run the test suite:

```
pip install "elitecs[test]"
pytest
```

## Dashboard

```python
from elitecs.dashboard import DashboardClient, TaskStatus

with DashboardClient() as dashboard:
    if dashboard.connect("192.168.1.200", 29999):
        print(dashboard.version())
        dashboard.power_on()
        dashboard.brake_release()
        dashboard.load_task("wait_program.task")
        dashboard.play_program()
        if dashboard.get_task_status() is TaskStatus.PLAYING:
            dashboard.log("task started")
        dashboard.stop_program()
        dashboard.power_off()
```

`connect()` reads the server's greeting line and returns `False` if the
connection cannot be made; an address that is not an IP address raises
`EliteException` with `ErrorCode.SOCKET_CONNECT_FAIL`. Commands that wait for
a state change (`power_on`, `brake_release`, `play_program` and the like)
poll the server every 0.1 s for up to 30 s. A reply that does not match what
a command expects raises `EliteException` with
`ErrorCode.DASHBOARD_NOT_EXPECT_RECIVE`; send and receive failures raise it
with `ErrorCode.SOCKET_FAIL`. `quit()`, `reboot()` and `shutdown()` close the
connection after sending their command.

## Primary port

```python
from elitecs.primary_port import PrimaryPort
from elitecs.primary_package import KinematicsInfo

def on_exception(event):
    print("robot reported:", event)

with PrimaryPort() as primary:
    primary.register_robot_exception_callback(on_exception)
    if primary.connect("192.168.1.200", 30001):
        kinematics = KinematicsInfo()
        if primary.get_package(kinematics, 0.5):
            print(kinematics.dh_a, kinematics.dh_d, kinematics.dh_alpha)

        primary.send_script('def hello():\n  textmsg("hello")\nend')
        print("local address:", primary.local_ip())
```

Timeouts are in seconds. The port runs a background thread that reads
messages, fills in requested sub-packages and hands robot errors and script
runtime exceptions to the callback. When the link drops it reports a
`RobotException` of type `ExceptionType.ROBOT_DISCONNECTED` once and keeps
trying to reconnect; `disconnect()` stops the thread and closes the socket.

Other sub-packages can be read by subclassing
`elitecs.primary_package.PrimaryPackage` with the sub-package type and a
`parse(data)` method; `data` starts at the sub-package header.

## Versions

```python
from elitecs.version import VersionInfo

v = VersionInfo.from_string("2.11.0.1")
print(str(v))  # 2.11.0.1
```

`from_string()` accepts two to four dot-separated numbers and raises
`EliteException` with `ErrorCode.ILLEGAL_PARAM` for fewer. Equality compares
all four fields; `a > b` holds only when both the major and the minor number
of `a` are greater, and the other orderings follow from that and equality.

## What it does not do

The package is a library only: it has no command-line tool. It does not
include the real-time data interface (RTSI), the servers that stream joint,
trajectory and script commands to a running control program, or remote
software upgrade and controller log download. Messages are logged through
the standard `logging` module under the `elitecs` loggers.