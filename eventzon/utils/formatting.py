"""
Locale-aware display helpers shared by ticket documents and e-mails.
"""

from datetime import date, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

FRENCH_WEEKDAYS = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]
FRENCH_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]
ENGLISH_WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
ENGLISH_MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def format_date(value: date, locale: str = "fr") -> str:
    """``samedi 15 juin 2024`` / ``Saturday, June 15, 2024``."""
    if locale == "en":
        return (
            f"{ENGLISH_WEEKDAYS[value.weekday()]}, "
            f"{ENGLISH_MONTHS[value.month - 1]} {value.day}, {value.year}"
        )
    return f"{FRENCH_WEEKDAYS[value.weekday()]} {value.day} {FRENCH_MONTHS[value.month - 1]} {value.year}"


def format_time(value: Optional[time], locale: str = "fr") -> str:
    if value is None:
        return ""
    if locale == "en":
        return value.strftime("%H:%M")
    return value.strftime("%Hh%M")


def format_amount(amount: Decimal, currency: str, locale: str = "fr") -> str:
    """Group thousands; cents are dropped when zero (``4 500 XAF``)."""
    amount = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount == amount.to_integral_value():
        text = f"{int(amount):,}"
    else:
        text = f"{amount:,.2f}"

    if locale == "en":
        return f"{text} {currency}"
    # French groups with spaces and uses a decimal comma
    text = text.replace(",", " ").replace(".", ",")
    return f"{text} {currency}"
