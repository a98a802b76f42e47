[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mockbitcoind"
version = "0.1.0"
description = "An in-process mock of the Bitcoin Core JSON-RPC interface for testing wallet and indexer code"
requires-python = ">=3.10"
keywords = ["bitcoin", "json-rpc", "mock", "testing", "regtest", "taproot"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing :: Mocking",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mockbitcoind"]

[tool.pytest.ini_options]
addopts = "-ra"
