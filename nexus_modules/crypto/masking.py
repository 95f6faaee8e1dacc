"""
Data masking (``nexus_modules.crypto.masking``).

Responsibility
--------------
Format-preserving, one-way masking of personal data for display and logs:
emails, phone numbers, card numbers, national IDs, IBANs, names, postal
addresses and dates of birth.

Invariants enforced
-------------------
* Masking never logs the value being masked.
* Card numbers show at most the first six and last four digits.
* Separators (spaces, hyphens, brackets) stay where they were.
"""

from __future__ import annotations

import re

from nexus_kernel.logging_config import get_logger
from nexus_modules.crypto.models import MaskingPattern

logger = get_logger("modules.crypto.masking")

EMAIL_LOCAL_VISIBLE = (1, 3)
PHONE_VISIBLE_DIGITS = 4
CARD_FIRST_VISIBLE = 6
CARD_LAST_VISIBLE = 4
IBAN_VISIBLE = 4
IBAN_MIN_LENGTH = 15
ADDRESS_MAX_MASK = 8
ALREADY_MASKED_RATIO = 0.3
REDACTION_MARKERS = ("[REDACTED]", "[MASKED]", "[SUPPRESSED]", "[HIDDEN]", "XXXX")

_NON_DIGITS = re.compile(r"\D")
_CARD_SEPARATORS = re.compile(r"[\s-]")
_LINE_BREAKS = re.compile(r"[\r\n]+")
_DATE_FORMATS = (
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), "{year}-{m}{m}-{m}{m}"),
    (re.compile(r"^(\d{2})/(\d{2})/(\d{4})$"), "{m}{m}/{m}{m}/{year}"),
    (re.compile(r"^(\d{2})-(\d{2})-(\d{4})$"), "{m}{m}-{m}{m}-{year}"),
    (re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$"), "{m}{m}.{m}{m}.{year}"),
)


class DataMasker:
    """Masks personal data by pattern; the original cannot be recovered from the output."""

    def __init__(self, mask_char: str = "*"):
        if len(mask_char) != 1:
            raise ValueError("Mask character must be a single character")
        self.mask_char = mask_char

    def mask(self, data: str, pattern: MaskingPattern) -> str:
        logger.debug("data_masked", extra={"pattern": pattern.value})
        if pattern is MaskingPattern.NATIONAL_ID:
            raise ValueError("NATIONAL_ID masking requires country context; use mask_national_id(value, country)")
        return self._handlers[pattern](self, data)

    def mask_with_pattern(self, data: str, pattern: str, mask_char: str | None = None) -> str:
        """
        Apply a character template to ``data``.

        ``#`` copies the next data character, ``*`` masks it and any other
        template character is emitted as a literal. Data left over once
        the template is exhausted is masked.
        """
        mask_char = mask_char or self.mask_char
        result = []
        index = 0
        for template_char in pattern:
            if index >= len(data):
                break
            if template_char == "#":
                result.append(data[index])
                index += 1
            elif template_char == "*":
                result.append(mask_char)
                index += 1
            else:
                result.append(template_char)
        result.append(mask_char * (len(data) - index))
        return "".join(result)

    def mask_email(self, email: str) -> str:
        if "@" not in email:
            logger.warning("email_mask_invalid_format")
            return self._mask_basic(email, 1, 0)
        local, domain = email.split("@", 1)
        low, high = EMAIL_LOCAL_VISIBLE
        visible = min(max(low, len(local) // 3), high)
        return local[:visible] + self.mask_char * max(0, len(local) - visible) + "@" + domain

    def mask_phone(self, phone: str) -> str:
        digits = _NON_DIGITS.sub("", phone)
        if len(digits) <= PHONE_VISIBLE_DIGITS:
            return phone
        # Walk from the end so the trailing digits stay and separators keep their place.
        kept = 0
        chars = []
        for char in reversed(phone):
            if char.isdigit():
                chars.append(char if kept < PHONE_VISIBLE_DIGITS else self.mask_char)
                kept += 1
            else:
                chars.append(char)
        return "".join(reversed(chars))

    def mask_credit_card(self, card_number: str) -> str:
        digits = _CARD_SEPARATORS.sub("", card_number)
        if not digits.isdigit():
            logger.warning("card_mask_invalid_format")
            return self._mask_basic(card_number, 4, 4)
        if not 13 <= len(digits) <= 19:
            logger.warning("card_mask_unusual_length", extra={"length": len(digits)})
        hidden = max(0, len(digits) - CARD_FIRST_VISIBLE - CARD_LAST_VISIBLE)
        masked = digits[:CARD_FIRST_VISIBLE] + self.mask_char * hidden + digits[-CARD_LAST_VISIBLE:]
        return self._apply_format(card_number, masked)

    def mask_national_id(self, national_id: str, country: str) -> str:
        country = country.upper()
        if country == "MY":
            return self._mask_malaysian_ic(national_id)
        if country == "US":
            return self._mask_us_ssn(national_id)
        if country in ("GB", "UK"):
            return self._mask_british_nin(national_id)
        if country == "SG":
            return self._mask_singapore_nric(national_id)
        return self._mask_basic(national_id, 2, 2)

    def mask_iban(self, iban: str) -> str:
        compact = iban.replace(" ", "")
        if len(compact) < IBAN_MIN_LENGTH:
            logger.warning("iban_mask_too_short", extra={"length": len(compact)})
            return self._mask_basic(iban, 2, 2)
        hidden = len(compact) - 2 * IBAN_VISIBLE
        masked = compact[:IBAN_VISIBLE] + self.mask_char * hidden + compact[-IBAN_VISIBLE:]
        return " ".join(masked[i : i + 4] for i in range(0, len(masked), 4))

    def mask_name(self, name: str) -> str:
        parts = name.split()
        return " ".join(part[0] + self.mask_char * (len(part) - 1) for part in parts)

    def mask_address(self, address: str) -> str:
        """Street line keeps three characters, middle lines two, and the last line its first word."""
        lines = _LINE_BREAKS.split(address)
        masked = []
        for index, line in enumerate(lines):
            line = line.strip()
            if not line:
                continue
            if index == 0:
                masked.append(self._mask_address_line(line, 3))
            elif index == len(lines) - 1:
                masked.append(self._keep_first_word(line))
            else:
                masked.append(self._mask_address_line(line, 2))
        return ", ".join(masked)

    def mask_date_of_birth(self, dob: str) -> str:
        for regex, template in _DATE_FORMATS:
            match = regex.match(dob)
            if match:
                year = match.group(1) if len(match.group(1)) == 4 else match.group(3)
                return template.format(year=year, m=self.mask_char)
        logger.warning("dob_mask_unknown_format")
        return self._mask_basic(dob, 0, 4)

    def redact(self, data: str, replacement: str = "[REDACTED]") -> str:
        return replacement

    def is_already_masked(self, value: str, mask_char: str | None = None) -> bool:
        mask_char = mask_char or self.mask_char
        if value and value.count(mask_char) / len(value) > ALREADY_MASKED_RATIO:
            return True
        upper = value.upper()
        return any(marker in upper for marker in REDACTION_MARKERS)

    # -- national IDs --------------------------------------------------------

    def _mask_malaysian_ic(self, ic: str) -> str:
        """MyKad ``YYMMDD-PB-NNNN``: birth year and last four stay."""
        compact = ic.replace("-", "")
        if len(compact) != 12:
            return self._mask_basic(ic, 2, 4)
        m = self.mask_char
        return f"{compact[:2]}{m * 4}-{m * 2}-{compact[-4:]}"

    def _mask_us_ssn(self, ssn: str) -> str:
        compact = ssn.replace("-", "")
        if len(compact) != 9:
            return self._mask_basic(ssn, 0, 4)
        m = self.mask_char
        return f"{m * 3}-{m * 2}-{compact[-4:]}"

    def _mask_british_nin(self, nin: str) -> str:
        compact = nin.replace(" ", "").upper()
        if len(compact) != 9:
            return self._mask_basic(nin, 2, 1)
        pair = self.mask_char * 2
        return f"{compact[:2]} {pair} {pair} {pair} {compact[-1]}"

    def _mask_singapore_nric(self, nric: str) -> str:
        compact = nric.strip().upper()
        if len(compact) != 9:
            return self._mask_basic(nric, 1, 4)
        return compact[0] + self.mask_char * 4 + compact[-4:]

    # -- helpers -------------------------------------------------------------

    def _mask_basic(self, data: str, visible_start: int = 0, visible_end: int = 0) -> str:
        length = len(data)
        visible_start = min(visible_start, length)
        visible_end = min(visible_end, length - visible_start)
        hidden = length - visible_start - visible_end
        return data[:visible_start] + self.mask_char * hidden + data[length - visible_end :]

    def _apply_format(self, original: str, masked_digits: str) -> str:
        result = []
        digits = iter(masked_digits)
        for char in original:
            if char.isdigit() or char == self.mask_char:
                result.append(next(digits, ""))
            else:
                result.append(char)
        return "".join(result)

    def _mask_address_line(self, line: str, visible_start: int) -> str:
        if len(line) <= visible_start:
            return line
        return line[:visible_start] + self.mask_char * min(ADDRESS_MAX_MASK, len(line) - visible_start)

    def _keep_first_word(self, line: str) -> str:
        words = line.split(maxsplit=1)
        if len(words) == 1:
            return words[0]
        return f"{words[0]} {self.mask_char * min(ADDRESS_MAX_MASK, len(words[1]))}"

    _handlers = {
        MaskingPattern.EMAIL: mask_email,
        MaskingPattern.PHONE: mask_phone,
        MaskingPattern.CREDIT_CARD: mask_credit_card,
        MaskingPattern.IBAN: mask_iban,
        MaskingPattern.NAME: mask_name,
        MaskingPattern.ADDRESS: mask_address,
        MaskingPattern.DATE_OF_BIRTH: mask_date_of_birth,
        MaskingPattern.FULL_REDACTION: redact,
    }
