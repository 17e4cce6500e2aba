# mpnode

Building blocks for a blockchain node that keeps zero-knowledge contract
state: arithmetic over the BLS12-381 scalar field, the Poseidon hash,
quaternary Merkle state trees kept in a key-value store with rollbacks,
and the bookkeeping a node does for its peers, firewall, mempool, clock
and wallet nonces. It has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

### `mpnode.field`

`ZkScalar` is an element of the scalar field (`MODULUS`), always kept
reduced. It supports `+`, `-`, `*`, unary `-`, `**` with a non-negative
integer exponent, equality, hashing and `int()`.

- `ZkScalar.from_le_bytes(data)` reads little-endian bytes and reduces the
  value modulo the field order; `to_le_bytes()` gives the 32-byte
  little-endian form.
- `to_u64()` returns the value as an integer and raises
  `ScalarTooLargeError` when it does not fit into 64 bits.
- `is_zero()` and `square()`.

### `mpnode.zkmodel`

- State models: `ScalarModel`, `StructModel(field_types)` and
  `ListModel(log4_size, item_type)`, each with `locate(locator)`,
  `compress_default(hasher)` and `is_valid(hasher)`. `locate` raises
  `InvalidLocatorError` for a path the model does not have; `is_valid`
  is false when a struct has more fields than the hasher's `max_arity`.
- `ZkDataLocator`, a path of 32-bit indices. `str()` gives the indices as
  hexadecimal joined by `_`, `ZkDataLocator.parse` reads that form back
  (raising `LocatorParseError` on bad input), and `index(i)` appends one
  index.
- `ZkHasher`, the abstract base of hashers: a `max_arity` and a
  `hash(vals)` method.
- `ZkState` holds the data of a contract and its rollback deltas;
  `apply_delta` sets values (a `None` value removes one) and `push_delta`
  also records the delta that undoes it. `as_delta` turns plain data into
  a delta.
- `ZkCompressedState(state_hash, state_size)`, with
  `ZkCompressedState.empty(model, hasher)` for the commitment to an empty
  state.

### `mpnode.poseidon`

`PoseidonHasher` is a `ZkHasher` computing Poseidon with one parameter
set per input count, from 1 to 16 inputs.
`PoseidonHasher.from_directory(path)` loads the files
`poseidon_params_n255_t{width}_alpha5_M128.txt` for widths 2 to 17 from
a directory; `for_width(width)` returns the `PoseidonParams` for a state
width, or `None`. `parse_params` reads the text of one parameter file and
`read_constants` reads one bracketed list of hexadecimal constants.

The parameter files are not shipped with the package; you supply the
directory that holds them.

### `mpnode.statedb`

`StateManager(db, hasher)` keeps contract states in a key-value store.
`MemoryKvStore` is an in-memory store with `get(key)`,
`update(puts, removes)` and `pairs(prefix)`; any object with those three
methods can be used instead.

- `put_contract(cid, contract)` stores a `ZkContract`; `type_of`,
  `height_of` and `root` read its model, height and current commitment.
  A missing contract raises `ContractNotFoundError`.
- `get_data(cid, locator)` reads a scalar or the hash of a subtree;
  `set_data(cid, locator, value)` writes one scalar, rehashes its
  ancestors and returns the new root hash together with the change in
  the number of non-zero scalars. Writing to a non-scalar location raises
  `NonScalarLocatorError`.
- `update_contract(cid, patch, target_height)` applies a delta atomically
  and records the delta that undoes it; the last five are kept.
  `rollback_contract` undoes the latest update and returns the new root,
  or `None` when nothing is left to undo. `rollback_of` and `delta_of`
  read the recorded deltas.
- `get_full_state`, `reset_contract` and `delete_contract` export,
  replace and remove the stored state.
- `prove(cid, tree_loc, index)` returns the three sibling hashes at each
  level from an item of a list to the list's root; a location that is
  not a list raises `NonTreeLocatorError`.
- `get_mpn_account`, `get_mpn_accounts` (paged, ordered by index) and
  `set_mpn_account` read and write `MpnAccount` records, each stored as
  four scalars: nonce, the two address coordinates and balance.

All of these errors derive from `StateManagerError`. `ZkStateBuilder`
builds a state of a given model in memory (`batch_set`, `get`,
`compress`, `prove`) and `compress_state(model, data, hasher)` returns
the commitment to a piece of data.

### `mpnode.peers`

`PeerAddress(ip, port)` and `Peer` describe nodes. `PeerManager` tracks
candidates, active peers and punished IP addresses: `add_candidate`,
`add_peer`, `mark_as_candidate`, `punish_ip_for`, `is_ip_punished`,
`get_peers`, `random_candidates`, `random_peers`, and `refresh`, which
lifts expired punishments and drops candidates older than the removal
threshold. The node's own address is never added.

### `mpnode.firewall`

`Firewall(request_count_limit_per_minute, traffic_limit_per_15m)` decides
with `incoming_permitted(client_ip)` whether a request is served and
counts it; `add_traffic` adds bytes to an address's total and `refresh`
resets the counters after their window. Loopback clients are always
permitted.

### `mpnode.mempool`

`Mempool` holds four pools (`tx`, `tx_zk`, `zk_tx`, `zk`) mapping pending
transactions to `TransactionStats(first_seen)`. `expire(now, max_age)`
drops entries older than `max_age` from `tx`, `tx_zk` and `zk` and
returns how many it dropped.

### `mpnode.grouping`

`group_request(peers, func)` awaits `func(peer)` for every peer
concurrently and returns `(peer, outcome)` pairs in order; a call that
raises gives its exception as the outcome.

### `mpnode.utils`

`local_timestamp()` gives seconds since the epoch; `median(values)`
gives the middle element after sorting (the upper one for even lengths)
and raises `ValueError` for an empty sequence.

### `mpnode.wallet`

`Wallet(mnemonic)` keeps the last regular nonce and a nonce per MPN
account index. `add_rsend`, `add_deposit`, `add_withdraw` and `add_zsend`
record used nonces, `new_r_nonce` and `new_z_nonce` give the next ones
(or `None` when none is known), and `reset` forgets them. `seed()`
returns the 64-byte BIP-39 seed of the mnemonic with an empty
passphrase. `save(path)` writes the wallet as JSON; `Wallet.open(path)`
returns `None` when the file cannot be opened and raises `WalletError`
when its contents are damaged.

### `mpnode.context`

`NodeContext`, configured by `NodeOptions`, ties the pieces together:
`local_timestamp` (from an injectable `clock`), `network_timestamp`
(local time plus `timestamp_offset`), `punish_bad_behavior`,
`punish_unresponsive`, `on_update`, and `refresh`, which expires peer
punishments, banned headers, firewall counters and old pooled
transactions, and asks the `blockchain` object, if one is set, to prune
each pool.

## Example

```python
from mpnode.field import ZkScalar
from mpnode.zkmodel import ZkDataLocator
from mpnode.utils import median

value = ZkScalar.from_le_bytes(bytes([123]))
assert value.to_u64() == 123

locator = ZkDataLocator.parse("1_ff")
assert str(locator) == "1_ff"

assert median([5, 1, 3]) == 3
```

## What the package does not do

There is no command and no network service: nothing here listens for
requests, talks to other nodes or runs a periodic heartbeat, although
`NodeContext`, `PeerManager`, `Firewall` and `group_request` are the
pieces such a service would use. There is no block storage or chain
validation; `NodeContext.blockchain` is any object you provide. The
package does not build or sign transactions, generate mnemonics, or
verify zero-knowledge proofs.