import pytest

from rules.bands import (
    buy_up_rising_rate_table,
    buy_up_table,
    buy_up_zero_rate_table,
    entry_threshold,
    sell_down_table,
    step_percent,
)

REFERENCES = [0.01, 1.0, 100.0, 260.10, 19678.45, 1e7]


@pytest.mark.parametrize("reference", REFERENCES)
def test_sell_down_table_shape(reference):
    table = sell_down_table(reference)

    assert len(table) == 10
    assert [b.drop_percent for b in table] == [2.5 * i for i in range(1, 11)]
    assert [b.ratio for b in table] == list(range(10, 101, 10))
    for band in table:
        assert band.target_price == reference * (1 - band.drop_percent / 100)


@pytest.mark.parametrize("reference", REFERENCES)
def test_rising_rate_table_shape(reference):
    table = buy_up_rising_rate_table(reference)

    assert len(table) == 11
    assert (table[0].drop_percent, table[0].ratio) == (5.0, 0)
    assert [b.drop_percent for b in table[1:]] == [10.0, 15.0, 20.0, 25.0, 30.0, 35.0, 40.0, 45.0, 50.0, 55.0]
    assert [b.ratio for b in table[1:]] == list(range(10, 101, 10))
    for band in table:
        assert band.target_price == reference * (1 - band.drop_percent / 100)


def test_zero_rate_table_matches_sell_down_percentages():
    zero = buy_up_zero_rate_table(200.0)
    sell = sell_down_table(200.0)
    assert [(b.drop_percent, b.ratio) for b in zero] == [(b.drop_percent, b.ratio) for b in sell]


def test_tables_are_regenerated_each_call():
    first = sell_down_table(100.0)
    first[0].ratio = 99
    assert sell_down_table(100.0)[0].ratio == 10


def test_target_prices_scale_with_reference():
    assert sell_down_table(100.0)[0].target_price == pytest.approx(97.5)
    assert buy_up_rising_rate_table(100.0)[-1].target_price == pytest.approx(45.0)


@pytest.mark.parametrize("reference", [0, -1.0, -260.10])
@pytest.mark.parametrize("build", [sell_down_table, buy_up_zero_rate_table, buy_up_rising_rate_table])
def test_non_positive_reference_is_rejected(build, reference):
    with pytest.raises(ValueError):
        build(reference)


def test_buy_up_table_by_rate_mode():
    assert len(buy_up_table(100.0, "zero-rate")) == 10
    assert len(buy_up_table(100.0, "rising-rate")) == 11


def test_step_and_entry_threshold():
    assert step_percent("zero-rate") == 2.5
    assert step_percent("rising-rate") == 5.0
    assert entry_threshold(sell_down_table(100.0)) == 2.5
    assert entry_threshold(buy_up_rising_rate_table(100.0)) == 5.0
    assert entry_threshold([]) == 0.0
