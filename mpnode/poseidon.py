"""The Poseidon hash, driven by parameter files for each state width."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from .field import MODULUS, ZkScalar
from .zkmodel import ZkHasher

MAX_ARITY = 16
_PARAM_FILE = "poseidon_params_n255_t{width}_alpha5_M128.txt"
_ROUND_CONSTANTS_LINE = 3
_MDS_LINE = 15


@dataclass(frozen=True)
class PoseidonParams:
    """Round counts and constants for one state width."""

    capacity: int
    full_rounds: int
    partial_rounds: int
    round_constants: tuple[ZkScalar, ...]
    mds_constants: tuple[tuple[ZkScalar, ...], ...]


def read_constants(line: str) -> list[ZkScalar]:
    """Parse a bracketed, comma-separated list of hexadecimal field elements."""
    cleaned = "".join(c for c in line.replace("0x", "") if c not in "'[] ")
    constants = []
    for item in cleaned.split(","):
        try:
            value = int(item, 16)
        except ValueError as exc:
            raise ValueError(f"invalid constant {item!r}") from exc
        if not 0 <= value < MODULUS:
            raise ValueError(f"constant {item!r} is not a field element")
        constants.append(ZkScalar(value))
    return constants


def _option(text: str) -> int:
    try:
        return int(text.split("=")[1])
    except (IndexError, ValueError) as exc:
        raise ValueError(f"invalid parameter option {text!r}") from exc


def parse_params(source: str) -> PoseidonParams:
    """Parse the text of a Poseidon parameter file."""
    lines = source.splitlines()
    if len(lines) <= _MDS_LINE:
        raise ValueError("parameter file is too short")
    opts = [s.strip() for s in lines[0].split(",")]
    if len(opts) < 6:
        raise ValueError("parameter header is incomplete")
    capacity = _option(opts[1])
    full_rounds = _option(opts[4])
    partial_rounds = _option(opts[5])
    if capacity <= 0:
        raise ValueError("capacity must be positive")
    round_constants = tuple(read_constants(lines[_ROUND_CONSTANTS_LINE]))
    flat = read_constants(lines[_MDS_LINE])
    mds = tuple(tuple(flat[start:start + capacity]) for start in range(0, len(flat), capacity))
    return PoseidonParams(capacity, full_rounds, partial_rounds, round_constants, mds)


def _quintic(x: ZkScalar) -> ZkScalar:
    return x * x.square().square()


def _permute(elements: list[ZkScalar], params: PoseidonParams) -> list[ZkScalar]:
    width = len(elements)
    rows = params.mds_constants[:width]
    if len(rows) < width or any(len(row) < width for row in rows):
        raise ValueError("MDS matrix is smaller than the state")
    offset = 0

    def add_round_constants(state: list[ZkScalar]) -> list[ZkScalar]:
        nonlocal offset
        chunk = params.round_constants[offset:offset + width]
        if len(chunk) < width:
            raise ValueError("not enough round constants")
        offset += width
        return [e + c for e, c in zip(state, chunk)]

    def mix(state: list[ZkScalar]) -> list[ZkScalar]:
        return [sum((m * e for m, e in zip(row, state)), ZkScalar(0)) for row in rows]

    half = params.full_rounds // 2
    schedule = [True] * half + [False] * params.partial_rounds + [True] * half
    for full in schedule:
        elements = add_round_constants(elements)
        if full:
            elements = [_quintic(e) for e in elements]
        else:
            elements = [_quintic(elements[0]), *elements[1:]]
        elements = mix(elements)
    return elements


class PoseidonHasher(ZkHasher):
    """Poseidon over the scalar field, one parameter set per input count."""

    def __init__(self, params: Sequence[PoseidonParams]) -> None:
        self._params = tuple(params)
        self.max_arity = len(self._params)

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> PoseidonHasher:
        """Load the parameter files for widths 2 to ``MAX_ARITY + 1``."""
        directory = Path(path)
        return cls([
            parse_params((directory / _PARAM_FILE.format(width=width)).read_text(encoding="utf-8"))
            for width in range(2, MAX_ARITY + 2)
        ])

    def for_width(self, width: int) -> Optional[PoseidonParams]:
        """Parameters for a state of ``width`` elements, if there are any."""
        if 2 <= width < len(self._params) + 2:
            return self._params[width - 2]
        return None

    def hash(self, vals: Sequence[ZkScalar]) -> ZkScalar:
        elements = [ZkScalar(0), *vals]
        params = self.for_width(len(elements))
        if params is None:
            raise ValueError(f"no Poseidon parameters for {len(vals)} inputs")
        return _permute(elements, params)[1]