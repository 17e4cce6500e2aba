import hashlib

import pytest

from mpnode.field import MODULUS, ZkScalar
from mpnode.poseidon import PoseidonHasher, PoseidonParams, parse_params, read_constants

FULL_ROUNDS = 4
PARTIAL_ROUNDS = 4


def _hex_list(values):
    return "[" + ", ".join(f"'0x{v:064x}'" for v in values) + "]"


def _params_text(width):
    rounds = FULL_ROUNDS + PARTIAL_ROUNDS
    round_constants = [
        int.from_bytes(hashlib.sha256(f"rc-{width}-{i}".encode()).digest(), "little") % MODULUS
        for i in range(rounds * width)
    ]
    mds = [pow(j + k + width, MODULUS - 2, MODULUS) for j in range(width) for k in range(width)]
    header = (
        f"Params: n=255, t={width}, alpha=5, M=128, "
        f"R_F={FULL_ROUNDS}, R_P={PARTIAL_ROUNDS}"
    )
    lines = [header, "Modulus = placeholder", "Number of round constants", _hex_list(round_constants)]
    lines += ["# filler"] * 11
    lines.append(_hex_list(mds))
    return "\n".join(lines) + "\n"


@pytest.fixture(scope="module")
def param_dir(tmp_path_factory):
    directory = tmp_path_factory.mktemp("poseidon")
    for width in range(2, 18):
        path = directory / f"poseidon_params_n255_t{width}_alpha5_M128.txt"
        path.write_text(_params_text(width), encoding="utf-8")
    return directory


@pytest.fixture(scope="module")
def hasher(param_dir):
    return PoseidonHasher.from_directory(param_dir)


def _zeros(n):
    return (ZkScalar(0),) * n


def test_hash_deterministic(hasher):
    vals = [ZkScalar(1)] * 4
    assert hasher.hash(vals) == hasher.hash(list(vals))


def test_hash_reflects_changes(hasher):
    for arity in range(1, hasher.max_arity + 1):
        vals = [ZkScalar(0)] * arity
        original = hasher.hash(vals)
        for i in range(arity):
            vals[i] = ZkScalar(1)
            assert hasher.hash(vals) != original


def test_loaded_widths(hasher):
    assert hasher.max_arity == 16
    assert hasher.for_width(1) is None
    assert hasher.for_width(2).capacity == 2
    assert hasher.for_width(17).capacity == 17
    assert hasher.for_width(18) is None


def test_hash_of_nothing_raises(hasher):
    with pytest.raises(ValueError):
        hasher.hash([])


def test_hash_of_too_many_raises(hasher):
    with pytest.raises(ValueError):
        hasher.hash([ZkScalar(1)] * 17)


def test_identity_full_rounds_worked_example():
    params = PoseidonParams(
        capacity=2,
        full_rounds=2,
        partial_rounds=0,
        round_constants=_zeros(4),
        mds_constants=((ZkScalar(1), ZkScalar(0)), (ZkScalar(0), ZkScalar(1))),
    )
    assert PoseidonHasher([params]).hash([ZkScalar(2)]) == ZkScalar(2 ** 25)


def test_partial_rounds_only_touch_first_element():
    params = PoseidonParams(
        capacity=2,
        full_rounds=0,
        partial_rounds=2,
        round_constants=_zeros(4),
        mds_constants=((ZkScalar(0), ZkScalar(1)), (ZkScalar(1), ZkScalar(0))),
    )
    assert PoseidonHasher([params]).hash([ZkScalar(2)]) == ZkScalar(32)


def test_missing_round_constants_raise():
    params = PoseidonParams(
        capacity=2,
        full_rounds=2,
        partial_rounds=0,
        round_constants=_zeros(3),
        mds_constants=((ZkScalar(1), ZkScalar(0)), (ZkScalar(0), ZkScalar(1))),
    )
    with pytest.raises(ValueError):
        PoseidonHasher([params]).hash([ZkScalar(2)])


def test_read_constants():
    assert read_constants("['0x01', '0x0a', '0xff']") == [ZkScalar(1), ZkScalar(10), ZkScalar(255)]


@pytest.mark.parametrize("line", ["['0xzz']", "[]", f"['0x{MODULUS:x}']"])
def test_read_constants_invalid(line):
    with pytest.raises(ValueError):
        read_constants(line)


def test_parse_params_fields():
    params = parse_params(_params_text(3))
    assert params.capacity == 3
    assert params.full_rounds == FULL_ROUNDS
    assert params.partial_rounds == PARTIAL_ROUNDS
    assert len(params.round_constants) == 3 * (FULL_ROUNDS + PARTIAL_ROUNDS)
    assert [len(row) for row in params.mds_constants] == [3, 3, 3]


def test_parse_params_too_short():
    with pytest.raises(ValueError):
        parse_params("Params: n=255, t=2, alpha=5, M=128, R_F=8, R_P=56\n")


def test_from_directory_missing_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        PoseidonHasher.from_directory(tmp_path)