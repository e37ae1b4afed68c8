from __future__ import annotations

import re
from typing import List, Optional

DIGITS_PATTERN = re.compile(r"\d+")
SOLD_PATTERN = re.compile(r"([\d. ,]+)\s*terjual", re.IGNORECASE)
EARN_PATTERN = re.compile(r"Earn\s*:\s*Rp\.?\s*([\d. ,]+)", re.IGNORECASE)
NUMBER_RUN_PATTERN = re.compile(r"[\d. ,]+")


def parse_currency_to_int(text: Optional[str]) -> int:
    """
    Joins every digit run, so thousands separators of any kind disappear.
    Examples:
      "Rp120.000" -> 120000
      "Rp 1,250,000" -> 1250000
    """
    if not text:
        return 0
    digits = "".join(DIGITS_PATTERN.findall(text))
    return int(digits) if digits else 0


def parse_sold(text: Optional[str]) -> int:
    if not text:
        return 0
    match = SOLD_PATTERN.search(text)
    if match:
        return parse_currency_to_int(match.group(1))
    numbers: List[int] = [int(n) for n in DIGITS_PATTERN.findall(text)]
    return max(numbers) if numbers else 0


def parse_commission(text: Optional[str]) -> int:
    if not text:
        return 0
    match = EARN_PATTERN.search(text)
    if match:
        return parse_currency_to_int(match.group(1))
    amounts = [parse_currency_to_int(run) for run in NUMBER_RUN_PATTERN.findall(text)]
    amounts = [amount for amount in amounts if amount > 0]
    return amounts[-1] if amounts else 0
