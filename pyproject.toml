[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "elitecs"
version = "1.2.0"
description = "Client library for Elite CS series robot controllers: dashboard shell, primary port, robot exception messages and version handling"
requires-python = ">=3.10"
dependencies = []
keywords = ["robot", "robotics", "elite", "dashboard", "primary port", "controller"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Manufacturing",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Human Machine Interfaces",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["elitecs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
