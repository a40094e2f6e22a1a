[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cabcoin"
version = "0.1.0"
description = "A small proof-of-work blockchain with a wallet, a solo miner and a TCP mining pool"
requires-python = ">=3.10"
dependencies = []
keywords = ["blockchain", "proof-of-work", "mining", "sha256", "wallet", "pool"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cabcoin = "cabcoin.cli:main"
cabcoin-pool = "cabcoin.pool:main"

[tool.hatch.build.targets.wheel]
packages = ["cabcoin"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
