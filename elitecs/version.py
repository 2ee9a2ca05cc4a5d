"""Controller version numbers."""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import EliteException, ErrorCode


@dataclass
class VersionInfo:
    """A four-part version: major.minor.bugfix.build."""

    major: int = 0
    minor: int = 0
    bugfix: int = 0
    build: int = 0

    @classmethod
    def from_string(cls, text: str) -> "VersionInfo":
        """Parse ``"major.minor[.bugfix[.build]]"``."""
        parts = text.split(".")
        if len(parts) < 2:
            raise EliteException(
                ErrorCode.ILLEGAL_PARAM,
                f"Given string '{text}' does not conform a version string format.",
            )
        version = cls(int(parts[0]), int(parts[1]))
        if len(parts) in (3, 4):
            version.bugfix = int(parts[2])
        if len(parts) == 4:
            version.build = int(parts[3])
        return version

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.bugfix}.{self.build}"

    def __gt__(self, other: "VersionInfo") -> bool:
        if not isinstance(other, VersionInfo):
            return NotImplemented
        return self.major > other.major and self.minor > other.minor

    def __ge__(self, other: "VersionInfo") -> bool:
        if not isinstance(other, VersionInfo):
            return NotImplemented
        return self == other or self > other

    def __lt__(self, other: "VersionInfo") -> bool:
        if not isinstance(other, VersionInfo):
            return NotImplemented
        return not self >= other

    def __le__(self, other: "VersionInfo") -> bool:
        if not isinstance(other, VersionInfo):
            return NotImplemented
        return self == other or self < other