"""Errors raised by the SDK."""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Reason codes carried by :class:`EliteException`."""

    SUCCESS = 0
    SOCKET_CONNECT_FAIL = 1
    SOCKET_FAIL = 2
    RTSI_UNKNOW_VARIABLE_TYPE = 3
    RTSI_RECIPE_PARSER_FAIL = 4
    ILLEGAL_PARAM = 5
    DASHBOARD_NOT_EXPECT_RECIVE = 6
    FILE_OPEN_FAIL = 7
    TCP_SERVER_CONTEXT_NULL = 8

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ErrorCode.SUCCESS: "success",
    ErrorCode.SOCKET_CONNECT_FAIL: "connect fail",
    ErrorCode.SOCKET_FAIL: "socket communicate error",
    ErrorCode.RTSI_UNKNOW_VARIABLE_TYPE: "RTSI receive unknown data type",
    ErrorCode.RTSI_RECIPE_PARSER_FAIL: "RTSI recipe parser fail",
    ErrorCode.ILLEGAL_PARAM: "illegal parameter",
    ErrorCode.DASHBOARD_NOT_EXPECT_RECIVE: "dashboard did not receive the expected response",
    ErrorCode.FILE_OPEN_FAIL: "open file fail",
    ErrorCode.TCP_SERVER_CONTEXT_NULL: "TCP server context is null",
}


class EliteException(RuntimeError):
    """An SDK error tagged with an :class:`ErrorCode`."""

    def __init__(self, code: ErrorCode, addition: str | None = None) -> None:
        message = code.description
        if addition is not None:
            message = f"{message}: {addition}"
        super().__init__(message)
        self.code = code
        self.addition = addition

    def __bool__(self) -> bool:
        return self.code is not ErrorCode.SUCCESS

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.code is other
        if isinstance(other, EliteException):
            return self.code is other.code and self.args == other.args
        return NotImplemented

    __hash__ = RuntimeError.__hash__