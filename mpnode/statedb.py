"""Key-value backed storage of zero-knowledge contract states and their rollbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .field import ZkScalar
from .zkmodel import (
    InvalidLocatorError,
    ListModel,
    ScalarModel,
    StructModel,
    ZkCompressedState,
    ZkDataLocator,
    ZkDeltaPairs,
    ZkHasher,
    ZkState,
    ZkStateModel,
    as_delta,
)

MAX_ROLLBACKS = 5
_ZERO_CONTRACT_ID = "0" * 64


class StateManagerError(Exception):
    """Base class for errors raised while reading or writing contract states."""


class ContractNotFoundError(StateManagerError):
    def __init__(self, message: str = "contract not found") -> None:
        super().__init__(message)


class NonScalarLocatorError(StateManagerError):
    def __init__(self, message: str = "not locating a scalar") -> None:
        super().__init__(message)


class NonTreeLocatorError(StateManagerError):
    def __init__(self, message: str = "not locating a tree") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class MpnAccount:
    """An account of the payment network contract."""

    nonce: int = 0
    address: tuple[ZkScalar, ZkScalar] = (ZkScalar(0), ZkScalar(0))
    balance: int = 0


@dataclass(frozen=True)
class ZkContract:
    """A contract: its initial commitment, its state model and its verifier keys."""

    initial_state: ZkCompressedState
    state_model: ZkStateModel
    deposit_functions: tuple[Any, ...] = ()
    withdraw_functions: tuple[Any, ...] = ()
    functions: tuple[Any, ...] = ()


def _check_cid(cid: str) -> str:
    if not cid or "-" in cid:
        raise ValueError(f"invalid contract id: {cid!r}")
    return cid


def _contract_key(cid: str) -> str:
    return f"CON-{_check_cid(cid)}"


def _local_prefix(cid: str) -> str:
    return f"LOC-{_check_cid(cid)}-"


def _root_key(cid: str) -> str:
    return f"{_local_prefix(cid)}RT"


def _height_key(cid: str) -> str:
    return f"{_local_prefix(cid)}HT"


def _scalar_prefix(cid: str) -> str:
    return f"{_local_prefix(cid)}S-"


def _value_key(cid: str, locator: ZkDataLocator, is_scalar: bool) -> str:
    tag = "S" if is_scalar else "N"
    return f"{_local_prefix(cid)}{tag}-{locator}"


def _aux_key(cid: str, locator: ZkDataLocator, index: int) -> str:
    return f"{_local_prefix(cid)}T-{locator}-{index:x}"


def _rollback_key(cid: str, height: int) -> str:
    return f"{_local_prefix(cid)}RB-{height:x}"


def _locator_from_key(key: str) -> ZkDataLocator:
    text = key.split("-")[3]
    return ZkDataLocator() if text == "" else ZkDataLocator.parse(text)


class MemoryKvStore:
    """An in-memory key-value store with batched updates."""

    def __init__(self, items: Optional[Mapping[str, Any]] = None) -> None:
        self._data: dict[str, Any] = dict(items or {})

    def get(self, key: str) -> Any:
        """The value under ``key``, or ``None``."""
        return self._data.get(key)

    def update(self, puts: Optional[Mapping[str, Any]] = None, removes: Iterable[str] = ()) -> None:
        """Remove the keys in ``removes``, then write ``puts``."""
        for key in removes:
            self._data.pop(key, None)
        if puts:
            self._data.update(puts)

    def pairs(self, prefix: str = "") -> list[tuple[str, Any]]:
        """All pairs whose key starts with ``prefix``, sorted by key."""
        return sorted((kv for kv in self._data.items() if kv[0].startswith(prefix)), key=lambda kv: kv[0])

    def __len__(self) -> int:
        return len(self._data)


class _Mirror:
    """A write-buffering view over another store."""

    def __init__(self, base: Any) -> None:
        self._base = base
        self._puts: dict[str, Any] = {}
        self._removed: set[str] = set()

    def get(self, key: str) -> Any:
        if key in self._removed:
            return None
        if key in self._puts:
            return self._puts[key]
        return self._base.get(key)

    def update(self, puts: Optional[Mapping[str, Any]] = None, removes: Iterable[str] = ()) -> None:
        for key in removes:
            self._puts.pop(key, None)
            self._removed.add(key)
        for key, value in (puts or {}).items():
            self._puts[key] = value
            self._removed.discard(key)

    def pairs(self, prefix: str = "") -> list[tuple[str, Any]]:
        merged = {k: v for k, v in self._base.pairs(prefix) if k not in self._removed}
        merged.update((k, v) for k, v in self._puts.items() if k.startswith(prefix))
        return sorted(merged.items(), key=lambda kv: kv[0])

    def changes(self) -> tuple[dict[str, Any], list[str]]:
        return dict(self._puts), sorted(self._removed)


class StateManager:
    """Reads and writes contract states kept in a key-value store."""

    def __init__(self, db: Any, hasher: ZkHasher) -> None:
        self.db = db
        self.hasher = hasher

    def put_contract(self, cid: str, contract: ZkContract) -> None:
        self.db.update({_contract_key(cid): contract})

    def type_of(self, cid: str) -> ZkStateModel:
        contract = self.db.get(_contract_key(cid))
        if contract is None:
            raise ContractNotFoundError()
        return contract.state_model

    def height_of(self, cid: str) -> int:
        height = self.db.get(_height_key(cid))
        return 0 if height is None else height

    def root(self, cid: str) -> ZkCompressedState:
        stored = self.db.get(_root_key(cid))
        if stored is not None:
            return stored
        return ZkCompressedState.empty(self.type_of(cid), self.hasher)

    def get_data(self, cid: str, locator: ZkDataLocator) -> ZkScalar:
        sub_type = self.type_of(cid).locate(locator)
        stored = self.db.get(_value_key(cid, locator, isinstance(sub_type, ScalarModel)))
        return sub_type.compress_default(self.hasher) if stored is None else stored

    def _update_tree(
        self, cid: str, loc: ZkDataLocator, tree: ListModel, leaf_index: int, value: ZkScalar
    ) -> tuple[ZkScalar, dict[str, Optional[ZkScalar]]]:
        hasher = self.hasher
        aux: dict[str, Optional[ZkScalar]] = {}
        curr_ind = leaf_index
        default = tree.item_type.compress_default(hasher)
        for layer in reversed(range(tree.log4_size)):
            aux_offset = ((1 << (2 * (layer + 1))) - 1) // 3
            start = curr_ind - curr_ind % 4
            dats = []
            for index in range(start, start + 4):
                if index == curr_ind:
                    dats.append(value)
                elif layer == tree.log4_size - 1:
                    dats.append(self.get_data(cid, loc.index(index)))
                else:
                    stored = self.db.get(_aux_key(cid, loc, aux_offset + index))
                    dats.append(default if stored is None else stored)
            value = hasher.hash(dats)
            default = hasher.hash([default] * 4)
            curr_ind //= 4
            if layer > 0:
                parent_offset = ((1 << (2 * layer)) - 1) // 3
                aux[_aux_key(cid, loc, parent_offset + curr_ind)] = None if value == default else value
        return value, aux

    def set_data(self, cid: str, locator: ZkDataLocator, value: ZkScalar) -> tuple[ZkScalar, int]:
        """Set one scalar and rehash its ancestors.

        Returns the new root hash and the change in the number of non-zero scalars.
        """
        model = self.type_of(cid)
        if not isinstance(model.locate(locator), ScalarModel):
            raise NonScalarLocatorError()
        puts: dict[str, Any] = {}
        removes: list[str] = []
        size_delta = 0
        prev_is_zero = self.get_data(cid, locator).is_zero()
        key = _value_key(cid, locator, True)
        if value.is_zero():
            if not prev_is_zero:
                size_delta = -1
            removes.append(key)
        else:
            if prev_is_zero:
                size_delta = 1
            puts[key] = value

        path = list(locator.path)
        while path:
            curr = path.pop()
            loc = ZkDataLocator(tuple(path))
            curr_type = model.locate(loc)
            if isinstance(curr_type, ListModel):
                value, aux = self._update_tree(cid, loc, curr_type, curr, value)
                for aux_key, aux_value in aux.items():
                    if aux_value is None:
                        removes.append(aux_key)
                    else:
                        puts[aux_key] = aux_value
            elif isinstance(curr_type, StructModel):
                value = self.hasher.hash([
                    value if i == curr else self.get_data(cid, loc.index(i))
                    for i in range(len(curr_type.field_types))
                ])
            else:
                raise InvalidLocatorError()
            node_key = _value_key(cid, loc, False)
            if value == curr_type.compress_default(self.hasher):
                removes.append(node_key)
            else:
                puts[node_key] = value

        self.db.update(puts, removes)
        return value, size_delta

    def update_contract(self, cid: str, patch: Mapping[ZkDataLocator, Optional[ZkScalar]], target_height: int) -> None:
        """Apply ``patch`` atomically, recording how to undo it, and move to ``target_height``."""
        if target_height < 1:
            raise ValueError("target height must be at least 1")
        fork = _Mirror(self.db)
        forked = StateManager(fork, self.hasher)
        root = forked.root(cid)
        state_hash, state_size = root.state_hash, root.state_size
        rollback: ZkDeltaPairs = {}
        for loc, val in patch.items():
            rollback[loc] = forked.get_data(cid, loc)
            state_hash, delta = forked.set_data(cid, loc, ZkScalar(0) if val is None else val)
            state_size += delta
        puts, removes = fork.changes()
        puts[_root_key(cid)] = ZkCompressedState(state_hash, state_size)
        puts[_rollback_key(cid, target_height - 1)] = rollback
        puts[_height_key(cid)] = target_height
        if target_height - 1 >= MAX_ROLLBACKS:
            removes.append(_rollback_key(cid, target_height - 1 - MAX_ROLLBACKS))
        self.db.update(puts, removes)

    def rollback_of(self, cid: str, away: int) -> Optional[ZkDeltaPairs]:
        """The delta that undoes the update ``away`` steps back, if it is kept."""
        height = self.height_of(cid)
        if height < away:
            return None
        stored = self.db.get(_rollback_key(cid, height - away))
        return None if stored is None else dict(stored)

    def rollback_contract(self, cid: str) -> Optional[ZkCompressedState]:
        """Undo the latest update; ``None`` when there is nothing left to undo."""
        root = self.root(cid)
        height = self.height_of(cid)
        patch = self.rollback_of(cid, 1)
        if patch is None:
            return None
        state_hash, state_size = root.state_hash, root.state_size
        for loc, val in patch.items():
            state_hash, delta = self.set_data(cid, loc, ZkScalar(0) if val is None else val)
            state_size += delta
        new_root = ZkCompressedState(state_hash, state_size)
        self.db.update(
            {_root_key(cid): new_root, _height_key(cid): height - 1},
            [_rollback_key(cid, height)],
        )
        return new_root

    def delta_of(self, cid: str, away: int) -> Optional[ZkDeltaPairs]:
        """Current values of everything changed in the last ``away`` updates."""
        data: ZkDeltaPairs = {}
        for i in range(away):
            rollback = self.rollback_of(cid, i + 1)
            if rollback is None:
                return None
            for loc in rollback:
                data[loc] = self.get_data(cid, loc)
        return data

    def get_full_state(self, cid: str) -> ZkState:
        data = {_locator_from_key(k): v for k, v in self.db.pairs(_scalar_prefix(cid))}
        rollbacks: list[ZkDeltaPairs] = []
        height = self.height_of(cid)
        for i in range(MAX_ROLLBACKS):
            if height <= i:
                break
            stored = self.db.get(_rollback_key(cid, height - i - 1))
            if stored is None:
                break
            rollbacks.append(dict(stored))
        return ZkState(data, rollbacks)

    def reset_contract(
        self, cid: str, height: int, state: ZkState
    ) -> tuple[ZkCompressedState, list[ZkCompressedState]]:
        """Replace the stored state by ``state`` and replay its rollbacks.

        Returns the root after all rollbacks and the root after each of them.
        """
        model = self.type_of(cid)
        self.db.update(removes=[k for k, _ in self.db.pairs(_local_prefix(cid))])
        state_hash = model.compress_default(self.hasher)
        state_size = 0
        for loc, val in state.data.items():
            state_hash, delta = self.set_data(cid, loc, val)
            state_size += delta
        self.db.update({
            _root_key(cid): ZkCompressedState(state_hash, state_size),
            _height_key(cid): height,
        })

        results: list[ZkCompressedState] = []
        root = self.root(cid)
        for i, rollback in enumerate(state.rollbacks):
            state_hash, state_size = root.state_hash, root.state_size
            for loc, val in rollback.items():
                state_hash, delta = self.set_data(cid, loc, ZkScalar(0) if val is None else val)
                state_size += delta
            root = ZkCompressedState(state_hash, state_size)
            self.db.update({_rollback_key(cid, height - 1 - i): dict(rollback)})
            results.append(root)
        return root, results

    def delete_contract(self, cid: str) -> None:
        """Remove all stored state of the contract; its definition is kept."""
        self.db.update(removes=[k for k, _ in self.db.pairs(_local_prefix(cid))])

    def prove(self, cid: str, tree_loc: ZkDataLocator, index: int) -> list[tuple[ZkScalar, ZkScalar, ZkScalar]]:
        """Sibling hashes along the path from item ``index`` to the root of a list."""
        tree = self.type_of(cid).locate(tree_loc)
        if not isinstance(tree, ListModel):
            raise NonTreeLocatorError()
        default = tree.item_type.compress_default(self.hasher)
        proof = []
        curr_ind = index
        for layer in reversed(range(tree.log4_size)):
            aux_offset = ((1 << (2 * (layer + 1))) - 1) // 3
            start = curr_ind - curr_ind % 4
            part = []
            for leaf in range(start, start + 4):
                if leaf == curr_ind:
                    continue
                if layer == tree.log4_size - 1:
                    part.append(self.get_data(cid, tree_loc.index(leaf)))
                else:
                    stored = self.db.get(_aux_key(cid, tree_loc, aux_offset + leaf))
                    part.append(default if stored is None else stored)
            curr_ind //= 4
            default = self.hasher.hash([default] * 4)
            proof.append(tuple(part))
        return proof

    def get_mpn_account(self, cid: str, index: int) -> MpnAccount:
        cells = [self.get_data(cid, ZkDataLocator((index, i))) for i in range(4)]
        return MpnAccount(
            nonce=cells[0].to_u64(),
            address=(cells[1], cells[2]),
            balance=cells[3].to_u64(),
        )

    def get_mpn_accounts(self, cid: str, page: int, page_size: int) -> list[tuple[int, MpnAccount]]:
        indices = sorted({
            loc.path[0]
            for loc in (_locator_from_key(k) for k, _ in self.db.pairs(_scalar_prefix(cid)))
            if loc.path
        })
        selected = indices[page_size * page:page_size * page + page_size]
        return [(ind, self.get_mpn_account(cid, ind)) for ind in selected]

    def set_mpn_account(self, cid: str, index: int, account: MpnAccount) -> int:
        """Write an account's cells; returns the change in non-zero scalar count."""
        values = [ZkScalar(account.nonce), account.address[0], account.address[1], ZkScalar(account.balance)]
        total = 0
        for i, val in enumerate(values):
            _, delta = self.set_data(cid, ZkDataLocator((index, i)), val)
            total += delta
        return total


class ZkStateBuilder:
    """Builds a state of a given model in memory and commits to it."""

    def __init__(self, model: ZkStateModel, hasher: ZkHasher) -> None:
        self._cid = _ZERO_CONTRACT_ID
        self._manager = StateManager(MemoryKvStore(), hasher)
        self._manager.put_contract(self._cid, ZkContract(ZkCompressedState.empty(model, hasher), model))

    def batch_set(self, delta: Mapping[ZkDataLocator, Optional[ZkScalar]]) -> None:
        height = self._manager.height_of(self._cid)
        self._manager.update_contract(self._cid, delta, height + 1)

    def get(self, locator: ZkDataLocator) -> ZkScalar:
        return self._manager.get_data(self._cid, locator)

    def compress(self) -> ZkCompressedState:
        return self._manager.root(self._cid)

    def prove(self, tree_loc: ZkDataLocator, index: int) -> list[tuple[ZkScalar, ZkScalar, ZkScalar]]:
        return self._manager.prove(self._cid, tree_loc, index)


def compress_state(model: ZkStateModel, data: Mapping[ZkDataLocator, ZkScalar], hasher: ZkHasher) -> ZkCompressedState:
    """The commitment to ``data`` laid out according to ``model``."""
    builder = ZkStateBuilder(model, hasher)
    builder.batch_set(as_delta(data))
    return builder.compress()