import pytest

from prng import LEHMER_MODULUS, SeededRandom, hash_seed


class TestHashSeed:
    def test_known_values(self) -> None:
        assert hash_seed(0) == 0
        assert hash_seed(1) == 2654435761
        assert hash_seed(2) == (2 * 2654435761) & 0xFFFFFFFF

    def test_negative_seed_uses_32_bit_pattern(self) -> None:
        assert hash_seed(-1) == 1640531535
        assert hash_seed(-1) == hash_seed(2**32 - 1)
        assert hash_seed(-12345) == hash_seed(2**32 - 12345)

    def test_oversized_seed_wraps(self) -> None:
        assert hash_seed(2**32 + 7) == hash_seed(7)

    def test_adjacent_seeds_are_decorrelated(self) -> None:
        hashes = [hash_seed(n) for n in range(1, 6)]
        gaps = {abs(b - a) for a, b in zip(hashes, hashes[1:])}
        assert min(gaps) > 1_000_000

    @pytest.mark.parametrize("seed", [1.5, "3", None, True])
    def test_rejects_non_integer(self, seed) -> None:
        with pytest.raises(ValueError):
            hash_seed(seed)


class TestSeededRandom:
    def test_first_value_of_seed_one(self) -> None:
        rng = SeededRandom(1)
        assert rng.next() == 1276552349 / LEHMER_MODULUS
        assert rng.state == 1276552349

    def test_values_in_unit_interval(self) -> None:
        for seed in (1, 2, -7, 123456789):
            for value in SeededRandom(seed).take(500):
                assert 0.0 <= value < 1.0

    def test_same_seed_same_stream(self) -> None:
        assert SeededRandom(42).take(100) == SeededRandom(42).take(100)

    def test_different_seeds_differ(self) -> None:
        assert SeededRandom(1).take(10) != SeededRandom(2).take(10)

    def test_instances_do_not_share_state(self) -> None:
        a = SeededRandom(9)
        b = SeededRandom(9)
        a.take(5)
        assert b.next() == SeededRandom(9).next()


class TestAbsorbingZero:
    """Seeds that hash to zero produce a constant stream of zeros."""

    @pytest.mark.parametrize("seed", [0, 2**32, -(2**32)])
    def test_zero_hash_is_degenerate(self, seed) -> None:
        rng = SeededRandom(seed)
        assert rng.is_degenerate
        assert rng.take(50) == [0.0] * 50

    def test_ordinary_seed_is_not_degenerate(self) -> None:
        rng = SeededRandom(1)
        assert not rng.is_degenerate
        assert any(v > 0 for v in rng.take(10))
