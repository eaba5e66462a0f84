import pytest

from leadgenie.domain.address import compose_address, parse_location, split_full_address, state_abbreviation
from leadgenie.domain.parsing import parse_days_on_market, parse_price


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$1,234,567", 1234567.0),
        ("450000", 450000.0),
        (325000, 325000.0),
        ("$2.5M", 2500000.0),
        ("$850K", 850000.0),
        ("$300,000 - $350,000", 300000.0),
        ({"value": 199000, "level": 1}, 199000.0),
    ],
)
def test_parse_price_accepts_common_shapes(raw, expected):
    assert parse_price(raw) == expected


@pytest.mark.parametrize("raw", ["N/A", "", None, "$0", 0, -5, "Contact agent", True, float("nan")])
def test_parse_price_rejects_non_positive_or_garbage(raw):
    # never defaults to 0: the record gets discarded instead
    assert parse_price(raw) is None


def test_parse_days_on_market():
    assert parse_days_on_market("12") == 12
    assert parse_days_on_market("1,024 days") == 1024
    assert parse_days_on_market(None) == 0
    assert parse_days_on_market("new") == 0
    assert parse_days_on_market(-3) == 0


def test_parse_location_splits_on_last_comma():
    assert parse_location("Austin, TX") == ("Austin", "TX")
    assert parse_location("  Salt Lake City ,  Utah ") == ("Salt Lake City", "UT")
    assert parse_location("Washington, DC, District of Columbia") == ("Washington, DC", "DC")
    assert parse_location("Austin") == ("Austin", "")


def test_state_abbreviation():
    assert state_abbreviation("Texas") == "TX"
    assert state_abbreviation("tx") == "TX"
    assert state_abbreviation("new york") == "NY"
    assert state_abbreviation(None) == ""


def test_compose_address_skips_missing_parts():
    assert compose_address("12 Oak St", "Austin", "TX", "78701") == "12 Oak St, Austin, TX 78701"
    assert compose_address("12 Oak St", "Austin", "TX") == "12 Oak St, Austin, TX"
    assert compose_address("12 Oak St", "Austin", "") == "12 Oak St, Austin"


def test_split_full_address():
    assert split_full_address("123 Main St, Austin, TX 78701") == {
        "street": "123 Main St",
        "city": "Austin",
        "state": "TX",
        "zipcode": "78701",
    }
    assert split_full_address("45 Elm Ln, Unit 4, Austin, TX") == {
        "street": "45 Elm Ln, Unit 4",
        "city": "Austin",
        "state": "TX",
    }
    assert split_full_address("9 Cedar Ct") == {"street": "9 Cedar Ct"}
