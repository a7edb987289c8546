"""Fields derived per request from the payload and the default configuration."""

from __future__ import annotations

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Mapping, Optional

from babel import Locale, UnknownLocaleError
from babel.languages import get_official_languages
from babel.numbers import format_currency
from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta

from .errors import ConfigurationError

DEFAULT_LOCALE = "en_US"
DAY_FIRST_FORMAT = "%d-%m-%Y"
CENTS = Decimal("0.01")


def parse_request_date(raw: str) -> dt.date:
    """Parse an ISO-8601 date or date-time, keeping the calendar date as written."""
    return dateutil_parser.isoparse(raw.strip()).date()


def fmt_day_first(value: dt.date) -> str:
    return value.strftime(DAY_FIRST_FORMAT)


def document_date(invoice_date: dt.date) -> str:
    return f"01/{invoice_date.month:02d}/{invoice_date.year:04d}"


def last_day_of_previous_month(invoice_date: dt.date) -> dt.date:
    previous = invoice_date - relativedelta(months=1)
    return previous + relativedelta(day=31)


def fmt_hours(hours: Any) -> str:
    quantity = float(hours)
    if quantity.is_integer():
        return f"{int(quantity)}h"
    return f"{hours}h"


def cents_precision(value: Decimal) -> int:
    """Digits needed to hold ``value`` with two decimal places."""
    return max(28, len(str(int(abs(value)))) + 3)


def fmt_fixed(amount: Any) -> str:
    # Decimal(float) is exact, so ties are judged on the real binary value.
    exact = Decimal(amount)
    with localcontext() as ctx:
        ctx.prec = cents_precision(exact)
        value = exact.quantize(CENTS, rounding=ROUND_HALF_UP)
    return format(value, "f")


def resolve_locale(country: Optional[str]) -> Locale:
    """Treat ``country`` as a locale tag, then as a territory code."""
    if not isinstance(country, str) or not country.strip():
        return Locale.parse(DEFAULT_LOCALE)

    identifier = country.strip().replace("-", "_")
    try:
        return Locale.parse(identifier)
    except (UnknownLocaleError, ValueError):
        pass

    territory = identifier.upper()
    for language in get_official_languages(territory, de_facto=True):
        try:
            return Locale(language, territory)
        except UnknownLocaleError:
            continue
    return Locale.parse(DEFAULT_LOCALE)


def fmt_payment(amount: str, country: Optional[str], currency: Any) -> str:
    if not isinstance(currency, str) or len(currency) != 3 or not currency.isalpha():
        raise ConfigurationError(
            f"Invoice configuration has invalid currency {currency!r}; expected an ISO 4217 code."
        )
    value = Decimal(amount)
    with localcontext() as ctx:
        ctx.prec = cents_precision(value)
        return format_currency(value, currency.upper(), locale=resolve_locale(country))


def compute_fields(
    request: Mapping[str, Any],
    default_config: Mapping[str, Any],
    today: Optional[dt.date] = None,
) -> Dict[str, Any]:
    now = today if today is not None else dt.date.today()
    invoice_date = parse_request_date(request["date"])

    price = fmt_fixed(request["price"])
    product = {
        "information": fmt_hours(request["hours"]),
        "price": price,
    }
    payment = {
        "toPayInNumbers": fmt_payment(
            price,
            default_config.get("country"),
            default_config.get("currency"),
        ),
    }

    return {
        "dateOfExposure": fmt_day_first(now),
        "dateOfSell": fmt_day_first(last_day_of_previous_month(invoice_date)),
        "documentDate": document_date(invoice_date),
        "product": product,
        "payment": payment,
    }
