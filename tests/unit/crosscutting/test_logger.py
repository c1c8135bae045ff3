"""
Name: Structured Logger Unit Tests

Responsibilities:
  - JSON payload shape (one object per record)
  - Correlation context injected from ContextVars
  - Redaction of secrets, long strings and embedding vectors

Collaborators:
  - ragcore.crosscutting.logger
  - ragcore.context
"""

import json
import logging
import sys

import pytest

from ragcore.context import clear_context, set_job_context, set_query_context
from ragcore.crosscutting.logger import JSONFormatter, _Redactor


def _record(msg="hello", exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="ragcore.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _clean_context():
    clear_context()
    yield
    clear_context()


@pytest.mark.unit
class TestJSONFormatter:
    def test_basic_payload(self):
        payload = json.loads(JSONFormatter().format(_record(chunks_created=3)))

        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "ragcore.test"
        assert payload["chunks_created"] == 3
        assert "args" not in payload

    def test_context_is_included(self):
        set_query_context(query_id="q-1")
        set_job_context(job_id="j-1", document_id="d-1")

        payload = json.loads(JSONFormatter().format(_record()))

        assert payload["query_id"] == "q-1"
        assert payload["job_id"] == "j-1"
        assert payload["document_id"] == "d-1"

    def test_secrets_are_redacted(self):
        payload = json.loads(
            JSONFormatter().format(
                _record(api_key="sk-123", settings={"redis_url": "redis://:pw@h"})
            )
        )

        assert payload["api_key"] == "***REDACTED***"
        assert payload["settings"]["redis_url"] == "***REDACTED***"

    def test_exception_is_serialized(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(exc_info=sys.exc_info())

        payload = json.loads(JSONFormatter().format(record))

        assert payload["exception"]["type"] == "RuntimeError"
        assert payload["exception"]["message"] == "boom"


@pytest.mark.unit
class TestRedactor:
    def test_long_strings_truncated(self):
        value = _Redactor(max_str=10).sanitize("x" * 50)

        assert value.startswith("x" * 10)
        assert value.endswith("(truncated)")

    def test_vectors_are_summarized(self):
        assert _Redactor().sanitize([0.1] * 768) == "<vector len=768>"
        assert _Redactor().sanitize([1, 2, 3]) == [1, 2, 3]

    def test_depth_is_bounded(self):
        nested = {"a": {"b": {"c": {"d": {"e": {"f": 1}}}}}}

        value = _Redactor(max_depth=2).sanitize(nested)

        assert value["a"]["b"]["c"] == "***TRUNCATED***"

    def test_non_serializable_becomes_string(self):
        assert _Redactor().sanitize(b"abc") == "<bytes 3B>"
        assert _Redactor().sanitize(object()).startswith("<object object")
