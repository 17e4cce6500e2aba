"""Elements of the prime field used for zero-knowledge state commitments."""

from __future__ import annotations

MODULUS = 52435875175126190479447740508185965837690552500527637822603658699938581184513
"""Order of the scalar field."""

_U64_LIMIT = 1 << 64
_REPR_BYTES = 32


class ScalarTooLargeError(ValueError):
    """Raised when a scalar does not fit into an unsigned 64-bit integer."""

    def __init__(self, message: str = "scalar bigger than u64") -> None:
        super().__init__(message)


class ZkScalar:
    """An element of the scalar field, always kept in canonical form."""

    __slots__ = ("_value",)

    def __init__(self, value: int = 0) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"field elements are built from int, not {type(value).__name__}")
        self._value = value % MODULUS

    @property
    def value(self) -> int:
        """The canonical integer representative in ``[0, MODULUS)``."""
        return self._value

    @classmethod
    def from_le_bytes(cls, data: bytes) -> ZkScalar:
        """Interpret ``data`` as a little-endian integer and reduce it into the field."""
        return cls(int.from_bytes(bytes(data), "little"))

    def to_le_bytes(self) -> bytes:
        """The 32-byte little-endian canonical representation."""
        return self._value.to_bytes(_REPR_BYTES, "little")

    def to_u64(self) -> int:
        """Return the value as an unsigned 64-bit integer."""
        if self._value >= _U64_LIMIT:
            raise ScalarTooLargeError()
        return self._value

    def is_zero(self) -> bool:
        return self._value == 0

    def square(self) -> ZkScalar:
        return ZkScalar(self._value * self._value)

    def __add__(self, other: object) -> ZkScalar:
        if not isinstance(other, ZkScalar):
            return NotImplemented
        return ZkScalar(self._value + other._value)

    def __sub__(self, other: object) -> ZkScalar:
        if not isinstance(other, ZkScalar):
            return NotImplemented
        return ZkScalar(self._value - other._value)

    def __mul__(self, other: object) -> ZkScalar:
        if not isinstance(other, ZkScalar):
            return NotImplemented
        return ZkScalar(self._value * other._value)

    def __neg__(self) -> ZkScalar:
        return ZkScalar(-self._value)

    def __pow__(self, exponent: int) -> ZkScalar:
        if not isinstance(exponent, int) or exponent < 0:
            return NotImplemented
        return ZkScalar(pow(self._value, exponent, MODULUS))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ZkScalar):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(("ZkScalar", self._value))

    def __int__(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"ZkScalar({self._value})"

    def __str__(self) -> str:
        return str(self._value)