"""State models, data locators and state containers for zero-knowledge contracts."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional, Sequence, Union

from .field import ZkScalar

_U32_MAX = 0xFFFF_FFFF
_HEX_PART = re.compile(r"\+?[0-9a-fA-F]+")


class InvalidLocatorError(LookupError):
    """Raised when a locator points to elements the model does not have."""

    def __init__(self, message: str = "locator pointing to nonexistent elements") -> None:
        super().__init__(message)


class LocatorParseError(ValueError):
    """Raised when the text form of a locator is malformed."""


class ZkHasher(ABC):
    """A hash function from a short sequence of scalars to a scalar."""

    max_arity: int

    @abstractmethod
    def hash(self, vals: Sequence[ZkScalar]) -> ZkScalar:
        """Hash ``vals`` into a single field element."""


@dataclass(frozen=True)
class ZkDataLocator:
    """A path of indices into a state model."""

    path: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        path = tuple(self.path)
        for part in path:
            if isinstance(part, bool) or not isinstance(part, int) or not 0 <= part <= _U32_MAX:
                raise ValueError(f"locator index out of range: {part!r}")
        object.__setattr__(self, "path", path)

    def index(self, ind: int) -> ZkDataLocator:
        """A new locator with ``ind`` appended."""
        return ZkDataLocator((*self.path, ind))

    @classmethod
    def parse(cls, text: str) -> ZkDataLocator:
        """Parse the ``_``-separated hexadecimal form produced by ``str()``."""
        parts = text.split("_")
        if not all(_HEX_PART.fullmatch(part) for part in parts):
            raise LocatorParseError(f"locator invalid: {text!r}")
        values = tuple(int(part, 16) for part in parts)
        if any(v > _U32_MAX for v in values):
            raise LocatorParseError(f"locator invalid: {text!r}")
        return cls(values)

    def __str__(self) -> str:
        return "_".join(f"{n:x}" for n in self.path)

    def __len__(self) -> int:
        return len(self.path)

    def __iter__(self) -> Iterator[int]:
        return iter(self.path)


def _split(locator: ZkDataLocator) -> tuple[int, ZkDataLocator]:
    head, *rest = locator.path
    return head, ZkDataLocator(tuple(rest))


def _model_is_valid(model: ZkStateModel, hasher: ZkHasher) -> bool:
    """Check that no struct in ``model`` has more fields than ``hasher`` can hash."""
    if isinstance(model, StructModel):
        if len(model.field_types) > hasher.max_arity:
            return False
        return all(_model_is_valid(ft, hasher) for ft in model.field_types)
    if isinstance(model, ListModel):
        return _model_is_valid(model.item_type, hasher)
    return True


@dataclass(frozen=True)
class ScalarModel:
    """A single field element."""

    def is_valid(self, hasher: ZkHasher) -> bool:
        return _model_is_valid(self, hasher)

    def locate(self, locator: ZkDataLocator) -> ZkStateModel:
        if locator.path:
            raise InvalidLocatorError()
        return self

    def compress_default(self, hasher: ZkHasher) -> ZkScalar:
        return ZkScalar(0)


@dataclass(frozen=True)
class StructModel:
    """A fixed sequence of differently typed fields, hashed together."""

    field_types: tuple[ZkStateModel, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_types", tuple(self.field_types))

    def is_valid(self, hasher: ZkHasher) -> bool:
        return _model_is_valid(self, hasher)

    def locate(self, locator: ZkDataLocator) -> ZkStateModel:
        if not locator.path:
            return self
        head, rest = _split(locator)
        if head >= len(self.field_types):
            raise InvalidLocatorError()
        return self.field_types[head].locate(rest)

    def compress_default(self, hasher: ZkHasher) -> ZkScalar:
        return hasher.hash([ft.compress_default(hasher) for ft in self.field_types])


@dataclass(frozen=True)
class ListModel:
    """A list of ``4 ** log4_size`` items committed to by a quaternary Merkle tree."""

    log4_size: int
    item_type: ZkStateModel

    @property
    def capacity(self) -> int:
        return 1 << (2 * self.log4_size)

    def is_valid(self, hasher: ZkHasher) -> bool:
        return _model_is_valid(self, hasher)

    def locate(self, locator: ZkDataLocator) -> ZkStateModel:
        if not locator.path:
            return self
        head, rest = _split(locator)
        if head >= self.capacity:
            raise InvalidLocatorError()
        return self.item_type.locate(rest)

    def compress_default(self, hasher: ZkHasher) -> ZkScalar:
        root = self.item_type.compress_default(hasher)
        for _ in range(self.log4_size):
            root = hasher.hash([root, root, root, root])
        return root


ZkStateModel = Union[ScalarModel, StructModel, ListModel]
ZkDataPairs = dict[ZkDataLocator, ZkScalar]
ZkDeltaPairs = dict[ZkDataLocator, Optional[ZkScalar]]


def as_delta(data: Mapping[ZkDataLocator, ZkScalar]) -> ZkDeltaPairs:
    """Turn a set of values into a delta that sets each of them."""
    return dict(data)


@dataclass
class ZkState:
    """The full state of a contract together with its rollback deltas."""

    data: ZkDataPairs = field(default_factory=dict)
    rollbacks: list[ZkDeltaPairs] = field(default_factory=list)

    def push_delta(self, delta: Mapping[ZkDataLocator, Optional[ZkScalar]]) -> None:
        """Apply ``delta`` and record the delta that undoes it."""
        rollback = {loc: self.data.get(loc) for loc in delta}
        self.apply_delta(delta)
        self.rollbacks.append(rollback)

    def apply_delta(self, delta: Mapping[ZkDataLocator, Optional[ZkScalar]]) -> None:
        """Set each located value, removing those mapped to ``None``."""
        for loc, val in delta.items():
            if val is None:
                self.data.pop(loc, None)
            else:
                self.data[loc] = val


@dataclass(frozen=True)
class ZkCompressedState:
    """A commitment to a contract state and the number of non-zero scalars in it."""

    state_hash: ZkScalar = ZkScalar(0)
    state_size: int = 0

    @classmethod
    def empty(cls, model: ZkStateModel, hasher: ZkHasher) -> ZkCompressedState:
        return cls(model.compress_default(hasher), 0)