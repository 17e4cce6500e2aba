[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mpnode"
version = "0.1.0"
description = "Zero-knowledge contract state trees, Poseidon hashing and peer bookkeeping for a blockchain node"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "blockchain",
    "zero-knowledge",
    "poseidon",
    "merkle",
    "state-tree",
    "peer-to-peer",
    "mempool",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["mpnode"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
