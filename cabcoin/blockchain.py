"""A simple proof-of-work blockchain stored as a pipe-separated text file."""

from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from cabcoin.crypto import sha256_hex

__all__ = [
    "MAX_BLOCKS",
    "DATA_MAX_LEN",
    "HASH_LEN",
    "CHAIN_FILE",
    "DIFFICULTY",
    "ZERO_HASH",
    "GENESIS_DATA",
    "Block",
    "InvalidChainError",
    "Blockchain",
    "block_hash",
    "meets_difficulty",
    "create_genesis_block",
    "last_block_info",
    "append_block",
]

MAX_BLOCKS = 1024
DATA_MAX_LEN = 256
HASH_LEN = 64
CHAIN_FILE = "data/chain.dat"
DIFFICULTY = 2
ZERO_HASH = "0" * HASH_LEN
GENESIS_DATA = "Genesis Block"

PathLike = Union[str, "os.PathLike[str]"]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _leading_int(token: str) -> int:
    """Parse the leading integer of ``token``, or 0 if there is none."""
    match = _LEADING_INT.match(token)
    return int(match.group(1)) if match else 0


def _fields(line: str) -> list:
    """Split a chain line on '|', dropping empty fields and the line ending."""
    return [field for field in line.rstrip("\n").split("|") if field]


def block_hash(index: int, timestamp: int, data: str, prev_hash: str, nonce: int) -> str:
    """Hash of the concatenation ``<index><timestamp><data><prev_hash><nonce>``."""
    return sha256_hex(f"{index}{timestamp}{data}{prev_hash}{nonce}")


def meets_difficulty(hash_hex: str, difficulty: int = DIFFICULTY) -> bool:
    """True when ``hash_hex`` starts with ``difficulty`` zero characters."""
    return hash_hex.startswith("0" * difficulty)


@dataclass
class Block:
    """One block of the chain."""

    index: int
    timestamp: int
    data: str
    prev_hash: str
    nonce: int = 0
    hash: str = ""

    def compute_hash(self) -> str:
        """Hash of every field except ``hash`` itself."""
        return block_hash(self.index, self.timestamp, self.data, self.prev_hash, self.nonce)

    def to_line(self) -> str:
        """Render as ``index|timestamp|nonce|data|prev_hash|hash`` with a newline."""
        return (
            f"{self.index}|{self.timestamp}|{self.nonce}|"
            f"{self.data}|{self.prev_hash}|{self.hash}\n"
        )

    @classmethod
    def from_line(cls, line: str) -> "Block":
        """Parse a chain file line; raise ValueError if a field is missing."""
        fields = _fields(line)
        if len(fields) < 6:
            raise ValueError(f"malformed chain line: {line!r}")
        index, timestamp, nonce, data, prev_hash, hash_hex = fields[:6]
        return cls(
            index=_leading_int(index),
            timestamp=_leading_int(timestamp),
            data=data[: DATA_MAX_LEN - 1],
            prev_hash=prev_hash[:HASH_LEN],
            nonce=_leading_int(nonce),
            hash=hash_hex[:HASH_LEN],
        )

    def describe(self) -> str:
        """Multi-line human-readable description of the block."""
        return (
            f"=== Block {self.index} ===\n"
            f"Timestamp : {self.timestamp}\n"
            f"Data      : {self.data}\n"
            f"Prev Hash : {self.prev_hash}\n"
            f"Nonce     : {self.nonce}\n"
            f"Hash      : {self.hash}\n"
            "-------------------------------\n"
        )


def _proof_of_work(block: Block) -> Block:
    """Increment the nonce until the block hash meets the difficulty."""
    while True:
        block.nonce += 1
        block.hash = block.compute_hash()
        if meets_difficulty(block.hash):
            return block


def create_genesis_block(timestamp: Optional[int] = None) -> Block:
    """Mine the first block of a new chain."""
    if timestamp is None:
        timestamp = int(time.time())
    genesis = Block(index=0, timestamp=timestamp, data=GENESIS_DATA, prev_hash=ZERO_HASH)
    return _proof_of_work(genesis)


class InvalidChainError(Exception):
    """Raised when a chain fails validation."""

    def __init__(self, message: str, index: int):
        super().__init__(message)
        self.index = index


class Blockchain:
    """An in-memory chain backed by a text file."""

    def __init__(self, path: PathLike = CHAIN_FILE):
        self.path = Path(path)
        self.blocks: list = []

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self.blocks)

    def load(self) -> bool:
        """Read the chain file; return True if at least one block was loaded.

        Reading stops at the first malformed line or after MAX_BLOCKS blocks.
        A missing file leaves the chain untouched and returns False.
        """
        try:
            handle = self.path.open("r", encoding="utf-8")
        except FileNotFoundError:
            return False
        self.blocks = []
        with handle:
            for line in handle:
                if len(self.blocks) >= MAX_BLOCKS:
                    break
                try:
                    self.blocks.append(Block.from_line(line))
                except ValueError:
                    break
        return bool(self.blocks)

    def save(self) -> None:
        """Overwrite the chain file with the current blocks."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            handle.writelines(block.to_line() for block in self.blocks)

    def init(self) -> Optional[Block]:
        """Load the chain, or create and save a genesis block.

        Returns the new genesis block if one was created, otherwise None.
        """
        if self.load():
            return None
        genesis = create_genesis_block()
        self.blocks = [genesis]
        self.save()
        return genesis

    def add_block(self, data: str) -> Block:
        """Mine a block holding ``data``, append it and save the chain."""
        if len(self.blocks) >= MAX_BLOCKS:
            raise ValueError(f"maximum number of blocks reached ({MAX_BLOCKS})")
        if not self.blocks:
            raise ValueError("chain has no blocks; initialise it first")
        last = self.blocks[-1]
        block = Block(
            index=last.index + 1,
            timestamp=int(time.time()),
            data=data[: DATA_MAX_LEN - 1],
            prev_hash=last.hash[:HASH_LEN],
        )
        _proof_of_work(block)
        self.blocks.append(block)
        self.save()
        return block

    def format(self) -> str:
        """Describe every block in order."""
        return "".join(block.describe() for block in self.blocks)

    def check(self) -> None:
        """Raise InvalidChainError at the first broken link, bad hash or weak hash."""
        for prev, cur in zip(self.blocks, self.blocks[1:]):
            if cur.prev_hash != prev.hash:
                raise InvalidChainError(
                    f"Invalid: Block {cur.index} prev_hash tidak cocok.", cur.index
                )
            if cur.hash != cur.compute_hash():
                raise InvalidChainError(
                    f"Invalid: Block {cur.index} hash tidak valid "
                    "(nonce/data pernah diubah?).",
                    cur.index,
                )
            if not meets_difficulty(cur.hash):
                raise InvalidChainError(
                    f"Invalid: Block {cur.index} hash tidak memenuhi difficulty.",
                    cur.index,
                )

    def is_valid(self) -> bool:
        """True when :meth:`check` finds nothing wrong."""
        try:
            self.check()
        except InvalidChainError:
            return False
        return True


def last_block_info(path: PathLike = CHAIN_FILE) -> Tuple[int, str]:
    """Return the index and the recorded previous hash of the last block line.

    Lines of five characters or fewer are ignored. When the file is missing or
    holds no such line, returns ``(-1, ZERO_HASH)``.
    """
    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            lines = [line for line in handle if len(line) > 5]
    except FileNotFoundError:
        return -1, ZERO_HASH
    if not lines:
        return -1, ZERO_HASH
    fields = _fields(lines[-1])
    if len(fields) < 5:
        raise ValueError(f"malformed chain line: {lines[-1]!r}")
    return _leading_int(fields[0]), fields[4][:HASH_LEN]


def append_block(path: PathLike, block: Block) -> None:
    """Append one block line to the chain file, creating its directory."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(block.to_line())