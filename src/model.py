"""
Option values of the Dataverse systemform and savedquery tables.
"""

import re
from enum import IntEnum


class FormType(IntEnum):
    """systemform.type"""

    DASHBOARD = 0
    APPOINTMENT_BOOK = 1
    MAIN = 2
    MINI_CAMPAIGN_BO = 3
    PREVIEW = 4
    MOBILE_EXPRESS = 5
    QUICK_VIEW = 6
    QUICK_CREATE = 7
    DIALOG = 8
    TASK_FLOW = 9
    INTERACTION_CENTRIC_DASHBOARD = 10
    CARD = 11
    MAIN_INTERACTIVE_EXPERIENCE = 12
    CONTEXTUAL_DASHBOARD = 13
    OTHER = 100
    MAIN_BACKUP = 101
    APPOINTMENT_BOOK_BACKUP = 102
    POWER_BI_DASHBOARD = 103

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()

    @classmethod
    def parse(cls, value: str) -> "FormType":
        """Accept a member name in any case or spacing ("QuickCreate", "quick create") or its number."""
        text = value.strip()
        if text.lstrip("-").isdigit():
            return cls(int(text))
        key = re.sub(r"[\s_-]", "", text).upper()
        for member in cls:
            if member.name.replace("_", "") == key:
                return member
        raise KeyError(value)


class ViewQueryType(IntEnum):
    """savedquery.querytype values of the system views this server manages."""

    MAIN_APPLICATION_VIEW = 0
    ADVANCED_SEARCH = 1
    SUB_GRID = 2
    QUICK_FIND = 4
    LOOKUP = 64

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()
