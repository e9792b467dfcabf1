from carmarket.app.utils.price_utils import digits_only, display_price, format_price_input, parse_price


def test_format_price_input_groups_thousands():
    assert format_price_input("85000") == "85,000"
    assert format_price_input("1234567") == "1,234,567"
    assert format_price_input("999") == "999"


def test_format_price_input_strips_non_digits():
    assert format_price_input("85,000 QAR") == "85,000"
    assert format_price_input("-12.5") == "125"


def test_empty_price_input_stays_empty():
    assert format_price_input("") == ""
    assert format_price_input(None) == ""
    assert format_price_input("QAR") == ""


def test_parse_price_reverses_formatting():
    assert parse_price("85,000") == 85000
    assert parse_price("") is None
    assert digits_only("a1b2c3") == "123"


def test_display_price():
    assert display_price(85000) == "85,000 QAR"
    assert display_price(None) is None
