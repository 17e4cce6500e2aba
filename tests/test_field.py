import pytest

from mpnode.field import MODULUS, ScalarTooLargeError, ZkScalar

U64_MAX = 18446744073709551615


def test_u64_conversion():
    assert ZkScalar(0).to_u64() == 0
    assert ZkScalar(123).to_u64() == 123
    assert ZkScalar(U64_MAX).to_u64() == U64_MAX
    with pytest.raises(ScalarTooLargeError):
        (ZkScalar(U64_MAX) + ZkScalar(1)).to_u64()


def test_values_are_reduced_modulo_field_order():
    assert ZkScalar(MODULUS) == ZkScalar(0)
    assert ZkScalar(MODULUS + 7) == ZkScalar(7)
    assert ZkScalar(-1).value == MODULUS - 1


def test_addition_wraps_around():
    total = ZkScalar(MODULUS - 1) + ZkScalar(1)
    assert total.is_zero()


def test_subtraction_and_negation_agree():
    a, b = ZkScalar(5), ZkScalar(9)
    assert a - b == -(b - a)
    assert a + (-a) == ZkScalar(0)


def test_square_matches_multiplication():
    x = ZkScalar(MODULUS - 12)
    assert x.square() == x * x
    assert ZkScalar(12).square() == ZkScalar(144)


def test_le_bytes_round_trip():
    x = ZkScalar(MODULUS - 3)
    encoded = x.to_le_bytes()
    assert len(encoded) == 32
    assert ZkScalar.from_le_bytes(encoded) == x


def test_from_le_bytes_reduces_large_input():
    data = (MODULUS + 5).to_bytes(33, "little")
    assert ZkScalar.from_le_bytes(data) == ZkScalar(5)


def test_le_bytes_of_small_value():
    assert ZkScalar(1).to_le_bytes() == b"\x01" + b"\x00" * 31


def test_is_zero():
    assert ZkScalar().is_zero()
    assert not ZkScalar(1).is_zero()


def test_non_int_rejected():
    with pytest.raises(TypeError):
        ZkScalar(1.5)


def test_scalars_are_immutable_and_hashable():
    x = ZkScalar(10)
    with pytest.raises(AttributeError):
        x.foo = 1
    assert {x: "a"}[ZkScalar(10)] == "a"