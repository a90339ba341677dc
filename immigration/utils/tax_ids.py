"""Brazilian tax identifiers (CPF for people, CNPJ for companies).

Both are stored digits-only.  ``digits_only`` strips punctuation and
returns None for empty input; ``is_valid_*`` checks length, rejects
repeated-digit sequences and verifies both check digits.
"""
import re

_NON_DIGIT = re.compile(r"\D")

_CNPJ_WEIGHTS_1 = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
_CNPJ_WEIGHTS_2 = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)


def digits_only(value):
    if value is None:
        return None
    digits = _NON_DIGIT.sub("", str(value))
    return digits or None


def _mod11_digit(total):
    rest = total % 11
    return 0 if rest < 2 else 11 - rest


def is_valid_cpf(value) -> bool:
    cpf = digits_only(value)
    if not cpf or len(cpf) != 11 or cpf == cpf[0] * 11:
        return False
    nums = [int(c) for c in cpf]
    first = _mod11_digit(sum(n * w for n, w in zip(nums[:9], range(10, 1, -1))))
    second = _mod11_digit(sum(n * w for n, w in zip(nums[:10], range(11, 1, -1))))
    return nums[9] == first and nums[10] == second


def is_valid_cnpj(value) -> bool:
    cnpj = digits_only(value)
    if not cnpj or len(cnpj) != 14 or cnpj == cnpj[0] * 14:
        return False
    nums = [int(c) for c in cnpj]
    first = _mod11_digit(sum(n * w for n, w in zip(nums[:12], _CNPJ_WEIGHTS_1)))
    second = _mod11_digit(sum(n * w for n, w in zip(nums[:13], _CNPJ_WEIGHTS_2)))
    return nums[12] == first and nums[13] == second


def format_cpf(value):
    cpf = digits_only(value)
    if not cpf or len(cpf) != 11:
        return value
    return f"{cpf[:3]}.{cpf[3:6]}.{cpf[6:9]}-{cpf[9:]}"


def format_cnpj(value):
    cnpj = digits_only(value)
    if not cnpj or len(cnpj) != 14:
        return value
    return f"{cnpj[:2]}.{cnpj[2:5]}.{cnpj[5:8]}/{cnpj[8:12]}-{cnpj[12:]}"
