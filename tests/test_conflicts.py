"""
Tests for uniqueness conflict classification across backend error shapes.
"""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError

from shortlink_app.services.conflicts import InsertOutcome, classify_conflict, classify_message


def integrity_error(orig) -> IntegrityError:
    return IntegrityError("INSERT INTO urls (id, url) VALUES (?, ?)", ("x1", "u"), orig)


class FakeDiag:
    def __init__(self, constraint_name):
        self.constraint_name = constraint_name


class FakePsycopgError(Exception):
    """Shape of psycopg's UniqueViolation: message plus ``diag``"""

    def __init__(self, message, constraint_name):
        super().__init__(message)
        self.diag = FakeDiag(constraint_name)


class TestSQLite:

    def test_duplicate_id(self):
        exc = integrity_error(sqlite3.IntegrityError("UNIQUE constraint failed: urls.id"))
        assert classify_conflict(exc) is InsertOutcome.DUPLICATE_ID

    def test_duplicate_url(self):
        exc = integrity_error(sqlite3.IntegrityError("UNIQUE constraint failed: urls.url"))
        assert classify_conflict(exc) is InsertOutcome.DUPLICATE_URL

    def test_not_null_is_not_a_conflict(self):
        exc = integrity_error(sqlite3.IntegrityError("NOT NULL constraint failed: urls.url"))
        assert classify_conflict(exc) is None


class TestPostgres:

    def test_primary_key_by_constraint_name(self):
        orig = FakePsycopgError("duplicate key value violates unique constraint", "pk_urls")
        assert classify_conflict(integrity_error(orig)) is InsertOutcome.DUPLICATE_ID

    def test_url_index_by_constraint_name(self):
        orig = FakePsycopgError("duplicate key value violates unique constraint", "uq_urls_url")
        assert classify_conflict(integrity_error(orig)) is InsertOutcome.DUPLICATE_URL

    def test_default_primary_key_name(self):
        orig = FakePsycopgError("duplicate key value", "urls_pkey")
        assert classify_conflict(integrity_error(orig)) is InsertOutcome.DUPLICATE_ID

    def test_structured_name_wins_over_message(self):
        # Message mentions the url index, the structured field says primary key
        orig = FakePsycopgError('violates unique constraint "uq_urls_url"', "pk_urls")
        assert classify_conflict(integrity_error(orig)) is InsertOutcome.DUPLICATE_ID

    def test_unknown_constraint(self):
        orig = FakePsycopgError("duplicate key value", "some_other_index")
        assert classify_conflict(integrity_error(orig)) is None


class TestMySQL:

    @pytest.mark.parametrize("key", ["'urls.PRIMARY'", "'PRIMARY'"])
    def test_duplicate_primary(self, key):
        orig = Exception(1062, f"Duplicate entry 'x1' for key {key}")
        assert classify_conflict(integrity_error(orig)) is InsertOutcome.DUPLICATE_ID

    def test_duplicate_url(self):
        orig = Exception(1062, "Duplicate entry 'https://example.com' for key 'urls.uq_urls_url'")
        assert classify_conflict(integrity_error(orig)) is InsertOutcome.DUPLICATE_URL

    def test_other_error_code(self):
        orig = Exception(1048, "Column 'url' cannot be null")
        assert classify_conflict(integrity_error(orig)) is None


class TestMessageFallback:

    def test_id_marker_wins_tie(self):
        message = "UNIQUE constraint failed: urls.id, urls.url"
        assert classify_message(message) is InsertOutcome.DUPLICATE_ID

    def test_unrelated_message(self):
        assert classify_message("FOREIGN KEY constraint failed") is None


class TestMySQLValueInMessage:
    """The duplicated value is part of MySQL's message and must not be matched"""

    def test_url_containing_primary(self):
        orig = Exception(
            1062, "Duplicate entry 'https://x.com/PRIMARY/urls.id' for key 'urls.uq_urls_url'"
        )
        assert classify_conflict(integrity_error(orig)) is InsertOutcome.DUPLICATE_URL
