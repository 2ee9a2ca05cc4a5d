"""Client library for Elite CS series robot controllers: dashboard, primary port, exceptions and versions."""

__version__ = "1.2.0"

__all__ = [
    "dashboard",
    "exceptions",
    "primary_package",
    "primary_port",
    "robot_exception",
    "version",
]