"""
Classification of uniqueness conflicts raised while inserting a URL row.

Structured signals are preferred:
- PostgreSQL (psycopg2 / psycopg): ``orig.diag.constraint_name``
- MySQL: error code 1062, key name parsed from the end of the message
  (the offending value comes earlier in the text and is never matched)

Every other backend (SQLite included) only reports text, so matching falls
back to substrings of the driver message. That ties correctness to the
backend's wording: re-check the markers below when adding a backend.
"""

import re
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError

from shortlink_app.models.url import PRIMARY_KEY_NAME, URL_UNIQUE_INDEX_NAME


class InsertOutcome(Enum):
    """Result of a single insert attempt."""
    CREATED = "created"
    DUPLICATE_ID = "duplicate_id"
    DUPLICATE_URL = "duplicate_url"


MYSQL_DUPLICATE_ENTRY = 1062
MYSQL_KEY_PATTERN = re.compile(r"for key '([^']*)'\s*$")

ID_CONSTRAINTS = (PRIMARY_KEY_NAME, "urls_pkey", "PRIMARY")
URL_CONSTRAINTS = (URL_UNIQUE_INDEX_NAME,)

# Checked in this order: an id marker wins over a url marker
ID_MARKERS = (
    PRIMARY_KEY_NAME,
    "urls_pkey",       # PostgreSQL default primary key name
    "urls.id",         # SQLite
)
URL_MARKERS = (
    URL_UNIQUE_INDEX_NAME,
    "urls.url",        # SQLite
)


def classify_conflict(exc: IntegrityError) -> Optional[InsertOutcome]:
    """
    Map an IntegrityError to the constraint it violated.

    Returns:
        ``InsertOutcome.DUPLICATE_ID`` or ``InsertOutcome.DUPLICATE_URL``,
        or None when the error is not a recognised uniqueness conflict
    """
    orig = getattr(exc, "orig", None)

    constraint = _postgres_constraint(orig)
    if constraint is not None:
        return classify_constraint(constraint)

    mysql_error = _mysql_error(orig)
    if mysql_error is not None:
        code, message = mysql_error
        if code != MYSQL_DUPLICATE_ENTRY:
            return None
        match = MYSQL_KEY_PATTERN.search(message)
        if match is None:
            return None
        # MySQL >= 8.0.19 prefixes the table: 'urls.PRIMARY'
        return classify_constraint(match.group(1).rsplit(".", 1)[-1])

    return classify_message(str(orig) if orig is not None else str(exc))


def classify_constraint(name: str) -> Optional[InsertOutcome]:
    if name in ID_CONSTRAINTS:
        return InsertOutcome.DUPLICATE_ID
    if name in URL_CONSTRAINTS:
        return InsertOutcome.DUPLICATE_URL
    return None


def classify_message(message: str) -> Optional[InsertOutcome]:
    """Substring fallback used when the driver exposes nothing structured."""
    lowered = message.lower()
    # e.g. NOT NULL failures also name the column
    if "unique" not in lowered and "duplicate" not in lowered:
        return None
    if any(marker in message for marker in ID_MARKERS):
        return InsertOutcome.DUPLICATE_ID
    if any(marker in message for marker in URL_MARKERS):
        return InsertOutcome.DUPLICATE_URL
    return None


def _postgres_constraint(orig) -> Optional[str]:
    diag = getattr(orig, "diag", None)
    if diag is None:
        return None
    return getattr(diag, "constraint_name", None)


def _mysql_error(orig):
    # PyMySQL / mysqlclient: args == (server error code, message)
    args = getattr(orig, "args", ())
    if len(args) >= 2 and isinstance(args[0], int) and isinstance(args[1], str):
        return args[0], args[1]
    return None
