"""A small proof-of-work blockchain with a wallet, a solo miner and a mining pool."""

__version__ = "0.1.0"