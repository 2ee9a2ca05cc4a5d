"""Robot exception messages reported on the primary port."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Union


class ExceptionType(IntEnum):
    ROBOT_DISCONNECTED = 0
    ROBOT_ERROR = 6
    SCRIPT_RUNTIME = 10


class ErrorSource(IntEnum):
    SAFETY = 99
    GUI = 103
    CONTROLLER = 104
    RTSI = 105
    JOINT = 120
    TOOL = 121
    TP = 122
    JOINT_FPGA = 200
    TOOL_FPGA = 201


class ErrorLevel(IntEnum):
    INFO = 0
    WARNING = 1
    ERROR = 2
    FATAL = 3


class ErrorDataType(IntEnum):
    NONE = 0
    UNSIGNED = 1
    SIGNED = 2
    FLOAT = 3
    HEX = 4
    STRING = 5
    JOINT = 6


@dataclass(frozen=True, kw_only=True)
class RobotException:
    """An exception event; on its own it reports a lost connection."""

    timestamp: int
    type: ExceptionType = ExceptionType.ROBOT_DISCONNECTED


@dataclass(frozen=True, kw_only=True)
class RobotError(RobotException):
    """An error reported by a part of the robot."""

    type: ExceptionType = field(default=ExceptionType.ROBOT_ERROR, init=False)
    code: int
    sub_code: int
    source: Union[ErrorSource, int]
    level: Union[ErrorLevel, int]
    data_type: ErrorDataType
    data: Union[int, str]


@dataclass(frozen=True, kw_only=True)
class RobotRuntimeException(RobotException):
    """An exception raised while a robot script ran."""

    type: ExceptionType = field(default=ExceptionType.SCRIPT_RUNTIME, init=False)
    line: int
    column: int
    message: str


def _as_enum(enum_cls, value: int):
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _parse_robot_error(timestamp: int, source: int, body: bytes, offset: int) -> Optional[RobotError]:
    code, sub_code, level, data_type = struct.unpack_from(">iiiI", body, offset)
    offset += 16
    try:
        kind = ErrorDataType(data_type)
    except ValueError:
        return None
    if kind in (ErrorDataType.NONE, ErrorDataType.UNSIGNED, ErrorDataType.HEX):
        (data,) = struct.unpack_from(">I", body, offset)
    elif kind in (ErrorDataType.SIGNED, ErrorDataType.JOINT):
        (data,) = struct.unpack_from(">i", body, offset)
    elif kind is ErrorDataType.STRING:
        data = body[offset:].decode("utf-8", errors="replace")
    else:
        return None
    return RobotError(
        timestamp=timestamp,
        code=code,
        sub_code=sub_code,
        source=_as_enum(ErrorSource, source),
        level=_as_enum(ErrorLevel, level),
        data_type=kind,
        data=data,
    )


def _parse_runtime(timestamp: int, body: bytes, offset: int) -> RobotRuntimeException:
    line, column = struct.unpack_from(">ii", body, offset)
    message = body[offset + 8:].decode("utf-8", errors="replace")
    return RobotRuntimeException(timestamp=timestamp, line=line, column=column, message=message)


def parse_robot_exception(body: bytes) -> Optional[RobotException]:
    """Decode the body of a robot exception message; None if it is of no known kind."""
    try:
        timestamp, source, kind = struct.unpack_from(">QBB", body, 0)
        offset = 10
        if kind == ExceptionType.ROBOT_ERROR:
            return _parse_robot_error(timestamp, source, body, offset)
        if kind == ExceptionType.SCRIPT_RUNTIME:
            return _parse_runtime(timestamp, body, offset)
    except struct.error as exc:
        raise ValueError(f"truncated robot exception message: {exc}") from exc
    return None