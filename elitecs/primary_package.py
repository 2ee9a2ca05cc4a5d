"""Sub-packages of the robot primary port state message."""

from __future__ import annotations

import struct
import threading
from abc import ABC, abstractmethod


class PrimaryPackage(ABC):
    """A sub-package that a primary port fills in when it arrives."""

    def __init__(self, package_type: int) -> None:
        self._package_type = package_type
        self._cond = threading.Condition()
        self._ready = False

    @property
    def package_type(self) -> int:
        return self._package_type

    @abstractmethod
    def parse(self, data: bytes) -> None:
        """Fill fields from ``data``, which starts at the sub-package header."""

    def wait_update(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for data; True once it has arrived."""
        with self._cond:
            return self._cond.wait_for(lambda: self._ready, timeout)

    def notify_updated(self) -> None:
        """Mark the data as updated and wake waiters."""
        with self._cond:
            self._ready = True
            self._cond.notify_all()


class RobotConfPackage(PrimaryPackage):
    """The robot configuration sub-package."""

    PACKAGE_TYPE = 6

    def __init__(self) -> None:
        super().__init__(self.PACKAGE_TYPE)

    def parse(self, data: bytes) -> None:
        """The bare configuration package keeps no fields."""


# Sub-header, joint limits, joint max speeds/accelerations and five defaults.
_DH_PARAM_OFFSET = 4 + 1 + 8 * 2 * 6 + 8 * 2 * 6 + 8 * 5
_DH_FORMAT = struct.Struct(">18d")


class KinematicsInfo(RobotConfPackage):
    """Denavit-Hartenberg parameters from the configuration sub-package."""

    def __init__(self) -> None:
        super().__init__()
        self.dh_a = [0.0] * 6
        self.dh_d = [0.0] * 6
        self.dh_alpha = [0.0] * 6

    def parse(self, data: bytes) -> None:
        end = _DH_PARAM_OFFSET + _DH_FORMAT.size
        if len(data) < end:
            raise ValueError(
                f"configuration sub-package too short: {len(data)} bytes, need {end}"
            )
        values = _DH_FORMAT.unpack_from(data, _DH_PARAM_OFFSET)
        self.dh_a = list(values[0:6])
        self.dh_d = list(values[6:12])
        self.dh_alpha = list(values[12:18])