"""Tests for contract id issue and display."""

import random

import pytest

from contract_ids import MAX_RANDOM_DRAWS, fmt_contract_id, issue_contract_id, taken_ids_of


class ScriptedRandom:
    """randint() returns queued values, then repeats the last one."""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    def randint(self, lo, hi):
        self.calls += 1
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


class TestIssueContractId:
    def test_avoids_taken(self):
        taken = {123456}
        assert issue_contract_id(taken, rng=ScriptedRandom(123456, 654321)) == 654321

    def test_always_six_digits(self, rng):
        for _ in range(200):
            n = issue_contract_id(set(), rng=rng)
            assert 100000 <= n <= 999999
            assert len(str(n)) == 6

    def test_never_returns_taken_value(self, rng):
        taken = set(range(100000, 100000 + 5000))
        for _ in range(50):
            assert issue_contract_id(taken, rng=rng) not in taken

    @pytest.mark.parametrize("digits", [1, 3, 8])
    def test_other_widths(self, digits):
        n = issue_contract_id([], digits=digits, rng=random.Random(7))
        assert len(str(n)) == digits

    def test_clock_fallback_after_all_draws_collide(self):
        rng = ScriptedRandom(111111)
        n = issue_contract_id({111111}, rng=rng, clock=lambda: 1_700_000_000_123)

        assert rng.calls == MAX_RANDOM_DRAWS
        assert n == 1_700_000_000_123 % 900000 + 100000
        assert len(str(n)) == 6

    def test_clock_fallback_stays_in_range(self):
        n = issue_contract_id({5}, digits=1, rng=ScriptedRandom(5), clock=lambda: 8)
        # 8 % 9 + 1 == 9
        assert n == 9

    def test_rejects_zero_digits(self):
        with pytest.raises(ValueError):
            issue_contract_id(set(), digits=0)


@pytest.mark.parametrize(
    "value, expected",
    [
        (1, "000001"),
        ("987654", "987654"),
        (42, "000042"),
        ("HD-0042", "000042"),
        (12345678, "345678"),
        (None, ""),
        ("", ""),
    ],
)
def test_fmt_contract_id(value, expected):
    assert fmt_contract_id(value) == expected


def test_taken_ids_of_skips_missing():
    loans = [{"contractId": 5}, {"contractId": None}, {"contractId": "777777"}, {}, {"contractId": "x"}]
    assert taken_ids_of(loans) == {5, 777777}
