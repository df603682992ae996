[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kvcore"
version = "0.1.0"
description = "Building blocks of a Redis-compatible key-value server: wire protocol, parser, dictionaries, locks and helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "resp", "key-value", "geohash", "consistent-hashing", "wildcard"]
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
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kvcore"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
