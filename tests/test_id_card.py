import pytest

from utils.id_card import gender_from_id_number, hash_id_number, is_valid_id_number

PREFIX = "1101011990030712"


@pytest.mark.parametrize("digit,expected", [
    ("1", 1), ("3", 1), ("5", 1), ("7", 1), ("9", 1),
    ("0", 2), ("2", 2), ("4", 2), ("6", 2), ("8", 2),
])
def test_gender_from_sex_digit(digit, expected):
    assert gender_from_id_number(PREFIX + digit + "5") == expected


def test_check_character_is_ignored_for_gender():
    assert gender_from_id_number(PREFIX + "1X") == 1
    assert gender_from_id_number(PREFIX + "2x") == 2


@pytest.mark.parametrize("value", ["", "123", PREFIX + "1", PREFIX + "A5", PREFIX + "15" + "0", "X" * 18,
                                   "١" * 17 + "X", PREFIX + "15\n"])
def test_invalid_numbers(value):
    assert is_valid_id_number(value) is False
    with pytest.raises(ValueError):
        gender_from_id_number(value)


def test_hash_is_case_and_whitespace_insensitive():
    assert hash_id_number(PREFIX + "1x") == hash_id_number(" " + PREFIX + "1X ")
    assert hash_id_number(PREFIX + "15") != hash_id_number(PREFIX + "25")
    assert len(hash_id_number(PREFIX + "15")) == 64
