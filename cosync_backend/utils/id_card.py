import hashlib
import re

from models.user import GENDER_MALE, GENDER_FEMALE

ID_NUMBER_PATTERN = re.compile(r"[0-9]{17}[0-9Xx]")

# 0-indexed position of the sex digit in an 18-character national ID
GENDER_DIGIT_INDEX = 16


def is_valid_id_number(id_number: str) -> bool:
    return bool(id_number) and bool(ID_NUMBER_PATTERN.fullmatch(id_number))


def gender_from_id_number(id_number: str) -> int:
    """Odd sex digit is male (1), even is female (2)."""
    if not is_valid_id_number(id_number):
        raise ValueError("Invalid national ID number")
    return GENDER_MALE if int(id_number[GENDER_DIGIT_INDEX]) % 2 == 1 else GENDER_FEMALE


def hash_id_number(id_number: str) -> str:
    return hashlib.sha256(id_number.strip().upper().encode("utf-8")).hexdigest()
