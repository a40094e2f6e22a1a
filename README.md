# cabcoin

A small proof-of-work blockchain kept in a plain text file, with a wallet,
a solo miner and a TCP mining pool. It has no dependencies beyond the
standard library.

Blocks are stored one per line in `data/chain.dat` (relative to the current
directory) as

    index|timestamp|nonce|data|prev_hash|hash

A block's hash is the hex SHA-256 of its index, timestamp, data, previous
hash and nonce written one after another. A block is mined once its hash
starts with two `0` characters (`cabcoin.blockchain.DIFFICULTY`).

## Installation

    pip install .

For the tests:

    pip install ".[test]"
    pytest

## The `cabcoin` command

Every command first loads `data/chain.dat`, creating it with a genesis
block when it does not exist yet, and reports what it did.

    cabcoin createwallet                   # generate a new wallet in wallet.dat
    cabcoin showwallet                     # print the address stored in wallet.dat
    cabcoin mine "<data>"                  # mine a block locally and append it
    cabcoin minepool <name> <host> <port>  # mine jobs handed out by a pool
    cabcoin showchain                      # print every block
    cabcoin validate                       # check links, hashes and difficulty

Run `cabcoin` with no arguments to see this list.

A wallet is a random 32-byte private key written as 64 hex characters; its
address is the SHA-256 hex digest of that key text. `wallet.dat` holds the
key on its first line and the address on its second.

`validate` checks every block after the first: its previous hash must equal
the hash of the block before it, its stored hash must match a fresh
computation, and the hash must meet the difficulty. The first problem found
is printed before `Blockchain TIDAK valid!`.

## The pool server

    cabcoin-pool            # listens on port 3333
    cabcoin-pool 4444       # listens on the given port

The pool serves each miner on its own thread and speaks a line protocol
over TCP:

1. the miner sends `HELLO <name>`;
2. the pool sends `JOB <index> <timestamp> <prev_hash> <difficulty>`;
3. the miner searches for a nonce for the data `Mined_by_<name>` and sends
   `SOLN <nonce>`;
4. the pool answers `ACCEPT <index> <hash>` and appends the block to the
   chain, or answers `REJECT`; then it sends the next job.

## Using it as a library

```python
from cabcoin.blockchain import Blockchain, block_hash, meets_difficulty
from cabcoin.wallet import generate_private_key, derive_address

chain = Blockchain("data/chain.dat")
chain.init()
chain.add_block("hello")
print(chain.format())
print(chain.is_valid())

key = generate_private_key()
print(derive_address(key))
```

`Blockchain.check()` raises `InvalidChainError` (with the offending block's
`index`) instead of returning a flag.

`cabcoin.miner.find_nonce(index, timestamp, data, prev_hash, difficulty)`
runs the proof-of-work search on its own and returns a `MiningResult` with
the nonce, the hash, the elapsed time and the hashrate.
`cabcoin.pool.PoolServer(port, chain_path)` runs the pool inside your own
program; call `serve_forever()` and, from another thread, `shutdown()`.

## Limitations

- `cabcoin mine` and the pool append to the file without loading the whole
  chain. The job's previous hash is taken from the *previous-hash field* of
  the last line in the file, not from that block's own hash, so blocks added
  this way do not link to the block before them and `cabcoin validate` will
  report the chain as not valid. `Blockchain.add_block` links blocks
  correctly.
- The wallet only holds a key and an address; nothing is signed with it and
  the chain has no transactions or balances.
- The pool checks only that a submitted nonce meets the difficulty; there is
  no peer-to-peer network or consensus between nodes.