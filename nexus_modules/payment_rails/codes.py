"""
ACH code tables (``nexus_modules.payment_rails.codes``).

Return reason codes, notification-of-change codes and Standard Entry Class
codes as published by NACHA. Pure lookup tables; no I/O.
"""

from __future__ import annotations

from enum import Enum


class AchReturnCode(str, Enum):
    # Administrative
    R01 = "R01"
    R02 = "R02"
    R03 = "R03"
    R04 = "R04"
    # Authorization
    R05 = "R05"
    R06 = "R06"
    R07 = "R07"
    R08 = "R08"
    R09 = "R09"
    R10 = "R10"
    # Account
    R11 = "R11"
    R12 = "R12"
    R13 = "R13"
    R14 = "R14"
    R15 = "R15"
    R16 = "R16"
    R17 = "R17"
    # Other
    R20 = "R20"
    R21 = "R21"
    R22 = "R22"
    R23 = "R23"
    R24 = "R24"
    R25 = "R25"
    R26 = "R26"
    R27 = "R27"
    R28 = "R28"
    R29 = "R29"
    R30 = "R30"
    R31 = "R31"
    # Special
    R32 = "R32"
    R33 = "R33"
    R34 = "R34"
    R35 = "R35"
    R36 = "R36"
    R37 = "R37"
    R38 = "R38"
    R39 = "R39"
    # International
    R61 = "R61"
    R62 = "R62"
    R63 = "R63"
    R64 = "R64"
    R65 = "R65"
    R66 = "R66"
    R67 = "R67"
    R68 = "R68"
    R69 = "R69"
    # Dishonored and contested
    R70 = "R70"
    R71 = "R71"
    R72 = "R72"
    R73 = "R73"
    R74 = "R74"
    R75 = "R75"
    R76 = "R76"
    # IAT
    R80 = "R80"
    R81 = "R81"
    R82 = "R82"
    R83 = "R83"
    R84 = "R84"
    R85 = "R85"

    @property
    def description(self) -> str:
        return _RETURN_DESCRIPTIONS[self]

    @property
    def is_administrative(self) -> bool:
        return self in (AchReturnCode.R01, AchReturnCode.R02, AchReturnCode.R03, AchReturnCode.R04)

    @property
    def is_insufficient_funds(self) -> bool:
        return self in (AchReturnCode.R01, AchReturnCode.R09)

    @property
    def is_retriable(self) -> bool:
        return self.is_insufficient_funds

    @property
    def is_authorization_issue(self) -> bool:
        return self in (
            AchReturnCode.R05,
            AchReturnCode.R07,
            AchReturnCode.R08,
            AchReturnCode.R10,
            AchReturnCode.R29,
        )

    @property
    def requires_account_update(self) -> bool:
        return self in (AchReturnCode.R02, AchReturnCode.R03, AchReturnCode.R04, AchReturnCode.R12)

    @property
    def suggested_action(self) -> str:
        return _SUGGESTED_ACTIONS.get(self, "Review and resolve based on specific circumstances")


_RETURN_DESCRIPTIONS: dict[AchReturnCode, str] = {
    AchReturnCode.R01: "Insufficient Funds",
    AchReturnCode.R02: "Account Closed",
    AchReturnCode.R03: "No Account/Unable to Locate Account",
    AchReturnCode.R04: "Invalid Account Number Structure",
    AchReturnCode.R05: "Unauthorized Debit to Consumer Account Using Corporate SEC Code",
    AchReturnCode.R06: "Returned per ODFI's Request",
    AchReturnCode.R07: "Authorization Revoked by Customer",
    AchReturnCode.R08: "Payment Stopped",
    AchReturnCode.R09: "Uncollected Funds",
    AchReturnCode.R10: "Customer Advises Originator is Not Known to Receiver and/or Not Authorized",
    AchReturnCode.R11: "Check Truncation Entry Return",
    AchReturnCode.R12: "Account Sold to Another DFI",
    AchReturnCode.R13: "RDFI Not Qualified to Participate",
    AchReturnCode.R14: "Representative Payee Deceased or Unable to Continue in that Capacity",
    AchReturnCode.R15: "Beneficiary or Account Holder Deceased",
    AchReturnCode.R16: "Account Frozen",
    AchReturnCode.R17: "File Record Edit Criteria",
    AchReturnCode.R20: "Non-Transaction Account",
    AchReturnCode.R21: "Invalid Company Identification",
    AchReturnCode.R22: "Invalid Individual ID Number",
    AchReturnCode.R23: "Credit Entry Refused by Receiver",
    AchReturnCode.R24: "Duplicate Entry",
    AchReturnCode.R25: "Addenda Error",
    AchReturnCode.R26: "Mandatory Field Error",
    AchReturnCode.R27: "Trace Number Error",
    AchReturnCode.R28: "Routing Number Check Digit Error",
    AchReturnCode.R29: "Corporate Customer Advises Not Authorized",
    AchReturnCode.R30: "RDFI Not Participant in Check Truncation Program",
    AchReturnCode.R31: "Permissible Return Entry (CCD and CTX Only)",
    AchReturnCode.R32: "RDFI Non-Settlement",
    AchReturnCode.R33: "Return of XCK Entry",
    AchReturnCode.R34: "Limited Participation DFI",
    AchReturnCode.R35: "Return of Improper Debit Entry",
    AchReturnCode.R36: "Return of Improper Credit Entry",
    AchReturnCode.R37: "Source Document Presented for Payment",
    AchReturnCode.R38: "Stop Payment on Source Document",
    AchReturnCode.R39: "Improper Source Document/Source Document Presented for Payment",
    AchReturnCode.R61: "Misrouted Return",
    AchReturnCode.R62: "Return of Erroneous or Reversing Debit",
    AchReturnCode.R63: "Incorrect Dollar Amount",
    AchReturnCode.R64: "Incorrect Individual Identification",
    AchReturnCode.R65: "Incorrect Transaction Code",
    AchReturnCode.R66: "Incorrect Company Identification",
    AchReturnCode.R67: "Duplicate Return",
    AchReturnCode.R68: "Untimely Return",
    AchReturnCode.R69: "Multiple Errors",
    AchReturnCode.R70: "Permissible Return Entry Not Accepted",
    AchReturnCode.R71: "Misrouted Dishonored Return",
    AchReturnCode.R72: "Untimely Dishonored Return",
    AchReturnCode.R73: "Timely Original Return",
    AchReturnCode.R74: "Corrected Return",
    AchReturnCode.R75: "Return Not a Duplicate",
    AchReturnCode.R76: "No Errors Found",
    AchReturnCode.R80: "IAT Entry Coding Error",
    AchReturnCode.R81: "Non-Participant in IAT Program",
    AchReturnCode.R82: "Invalid Foreign Receiving DFI Identification",
    AchReturnCode.R83: "Foreign Receiving DFI Unable to Settle",
    AchReturnCode.R84: "Entry Not Processed by Gateway",
    AchReturnCode.R85: "Incorrectly Coded Outbound International Payment",
}

_SUGGESTED_ACTIONS: dict[AchReturnCode, str] = {
    AchReturnCode.R01: "Retry payment after sufficient funds are available",
    AchReturnCode.R09: "Retry payment after sufficient funds are available",
    AchReturnCode.R02: "Contact customer for updated account information",
    AchReturnCode.R03: "Contact customer for updated account information",
    AchReturnCode.R04: "Verify and correct account/routing number",
    AchReturnCode.R28: "Verify and correct account/routing number",
    AchReturnCode.R05: "Obtain new authorization from customer",
    AchReturnCode.R07: "Obtain new authorization from customer",
    AchReturnCode.R10: "Obtain new authorization from customer",
    AchReturnCode.R29: "Obtain new authorization from customer",
    AchReturnCode.R08: "Contact customer - payment was stopped",
    AchReturnCode.R12: "Request updated account information",
    AchReturnCode.R15: "Contact estate or authorized representative",
    AchReturnCode.R16: "Account is frozen - contact customer",
    AchReturnCode.R24: "Check for duplicate submission",
}


class NocCode(str, Enum):
    """Notification of Change: the receiving bank asks the originator to correct stored details."""

    C01 = "C01"
    C02 = "C02"
    C03 = "C03"
    C04 = "C04"
    C05 = "C05"
    C06 = "C06"
    C07 = "C07"
    C08 = "C08"
    C09 = "C09"
    C10 = "C10"
    C11 = "C11"
    C12 = "C12"
    C13 = "C13"

    @property
    def description(self) -> str:
        return _NOC_TABLE[self][0]

    @property
    def field_to_update(self) -> tuple[str, ...]:
        """Stored fields the corrected data in the NOC addenda replaces."""
        return _NOC_TABLE[self][1]


_NOC_TABLE: dict[NocCode, tuple[str, tuple[str, ...]]] = {
    NocCode.C01: ("Incorrect DFI Account Number", ("account_number",)),
    NocCode.C02: ("Incorrect Routing Number", ("routing_number",)),
    NocCode.C03: ("Incorrect Routing Number and DFI Account Number", ("routing_number", "account_number")),
    NocCode.C04: ("Incorrect Individual Name/Receiving Company Name", ("individual_name",)),
    NocCode.C05: ("Incorrect Transaction Code", ("transaction_code",)),
    NocCode.C06: ("Incorrect DFI Account Number and Transaction Code", ("account_number", "transaction_code")),
    NocCode.C07: (
        "Incorrect Routing Number, DFI Account Number, and Transaction Code",
        ("routing_number", "account_number", "transaction_code"),
    ),
    NocCode.C08: ("Incorrect Receiving DFI Identification (IAT Only)", ("receiving_dfi_identification",)),
    NocCode.C09: ("Incorrect Individual Identification Number", ("individual_id",)),
    NocCode.C10: ("Incorrect Company Name", ("company_name",)),
    NocCode.C11: ("Incorrect Company Identification", ("company_id",)),
    NocCode.C12: ("Incorrect Company Name and Company Identification", ("company_name", "company_id")),
    NocCode.C13: ("Addenda Format Error", ("addenda",)),
}


class SecCode(str, Enum):
    """Standard Entry Class: how the originator obtained authorization for the entry."""

    PPD = "PPD"
    CCD = "CCD"
    CTX = "CTX"
    WEB = "WEB"
    TEL = "TEL"
    IAT = "IAT"
    POP = "POP"
    ARC = "ARC"
    BOC = "BOC"
    RCK = "RCK"

    @property
    def description(self) -> str:
        return _SEC_DESCRIPTIONS[self]

    @property
    def is_consumer(self) -> bool:
        return self not in (SecCode.CCD, SecCode.CTX, SecCode.IAT)

    @property
    def is_corporate(self) -> bool:
        return self in (SecCode.CCD, SecCode.CTX)

    @property
    def requires_authorization_record(self) -> bool:
        """Check-conversion codes are authorized by the source document instead."""
        return self in (SecCode.PPD, SecCode.CCD, SecCode.CTX, SecCode.WEB, SecCode.TEL, SecCode.IAT)

    @property
    def max_addenda(self) -> int:
        return _SEC_MAX_ADDENDA[self]


_SEC_DESCRIPTIONS: dict[SecCode, str] = {
    SecCode.PPD: "Prearranged Payment and Deposit",
    SecCode.CCD: "Corporate Credit or Debit",
    SecCode.CTX: "Corporate Trade Exchange",
    SecCode.WEB: "Internet-Initiated/Mobile Entry",
    SecCode.TEL: "Telephone-Initiated Entry",
    SecCode.IAT: "International ACH Transaction",
    SecCode.POP: "Point-of-Purchase Entry",
    SecCode.ARC: "Accounts Receivable Entry",
    SecCode.BOC: "Back Office Conversion Entry",
    SecCode.RCK: "Re-presented Check Entry",
}

_SEC_MAX_ADDENDA: dict[SecCode, int] = {
    SecCode.PPD: 1,
    SecCode.CCD: 1,
    SecCode.CTX: 9999,
    SecCode.WEB: 1,
    SecCode.TEL: 0,
    SecCode.IAT: 12,
    SecCode.POP: 0,
    SecCode.ARC: 0,
    SecCode.BOC: 0,
    SecCode.RCK: 0,
}
