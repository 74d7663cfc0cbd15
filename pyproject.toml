[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stakestream"
version = "0.1.0"
description = "In-memory staking derivative token and time-vested token stream contracts"
requires-python = ">=3.10"
dependencies = []
keywords = ["staking", "token", "streams", "vesting", "ledger", "derivative"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Office/Business :: Financial",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["stakestream"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
