[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dcwallet"
version = "0.1.0"
description = "Deposit and withdrawal wallet building blocks: SQL queries, run locks, notification delivery and EOS/Ethereum RPC clients"
requires-python = ">=3.10"
keywords = ["wallet", "ethereum", "erc20", "eos", "bitcoin", "omni", "json-rpc", "deposits", "withdrawals"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["dcwallet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
