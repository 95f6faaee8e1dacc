"""
Card brand detection (``nexus_modules.payment_rails.cards``).

Issuer identification by IIN prefix and the Luhn check digit test used for
virtual-card and card-on-file numbers.
"""

from __future__ import annotations

import re
from enum import Enum

_NON_DIGITS = re.compile(r"[\s-]")


def _digits(card_number: str) -> str:
    return _NON_DIGITS.sub("", card_number or "")


def luhn_valid(number: str) -> bool:
    """Mod-10 check over a digit string; spaces and dashes are ignored."""
    digits = _digits(number)
    if not digits.isdigit() or len(digits) < 2:
        return False
    total = 0
    for index, char in enumerate(reversed(digits)):
        value = int(char)
        if index % 2 == 1:
            value *= 2
            if value > 9:
                value -= 9
        total += value
    return total % 10 == 0


class CardBrand(str, Enum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"
    DISCOVER = "discover"
    JCB = "jcb"
    DINERS = "diners"
    UNIONPAY = "unionpay"

    @classmethod
    def detect(cls, card_number: str) -> CardBrand | None:
        """
        Brand for a card number by IIN range, or ``None`` when unrecognised.

        Discover's co-branded 622126-622925 range is checked before the
        broader UnionPay ``62`` prefix.
        """
        digits = _digits(card_number)
        if not digits.isdigit():
            return None
        for brand, ranges in _IIN_RANGES:
            for low, high in ranges:
                width = len(str(low))
                if len(digits) >= width and low <= int(digits[:width]) <= high:
                    return brand
        return None

    @property
    def card_lengths(self) -> tuple[int, ...]:
        return _CARD_LENGTHS[self]

    @property
    def cvv_length(self) -> int:
        return 4 if self is CardBrand.AMEX else 3

    def is_valid_length(self, card_number: str) -> bool:
        return len(_digits(card_number)) in self.card_lengths


# Ordered: narrower ranges first.
_IIN_RANGES: tuple[tuple[CardBrand, tuple[tuple[int, int], ...]], ...] = (
    (CardBrand.AMEX, ((34, 34), (37, 37))),
    (CardBrand.DISCOVER, ((6011, 6011), (622126, 622925), (644, 649), (65, 65))),
    (CardBrand.UNIONPAY, ((62, 62),)),
    (CardBrand.JCB, ((3528, 3589),)),
    (CardBrand.DINERS, ((300, 305), (36, 36), (38, 39))),
    (CardBrand.MASTERCARD, ((51, 55), (2221, 2720))),
    (CardBrand.VISA, ((4, 4),)),
)

_CARD_LENGTHS: dict[CardBrand, tuple[int, ...]] = {
    CardBrand.VISA: (13, 16, 19),
    CardBrand.MASTERCARD: (16,),
    CardBrand.AMEX: (15,),
    CardBrand.DISCOVER: (16, 17, 18, 19),
    CardBrand.JCB: (16, 17, 18, 19),
    CardBrand.DINERS: (14, 15, 16, 17, 18, 19),
    CardBrand.UNIONPAY: (16, 17, 18, 19),
}
