from __future__ import annotations

import io
import json
import logging
from collections.abc import Generator

import pytest

from opshub.context import correlation_scope, get_correlation_id
from opshub.logging import LOGGER_NAME, configure_logging, mask_pii


@pytest.fixture()
def log_stream() -> Generator[io.StringIO, None, None]:
    logger = logging.getLogger(LOGGER_NAME)
    logger._opshub_configured = False  # type: ignore[attr-defined]
    stream = io.StringIO()
    configure_logging(stream)
    yield stream
    logger.handlers.clear()
    logger.propagate = True
    logger._opshub_configured = False  # type: ignore[attr-defined]


def _lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


def test_log_lines_are_json_with_known_fields(log_stream: io.StringIO) -> None:
    logging.getLogger("opshub.allocations").info(
        "allocation.reassigned",
        extra={"customer_id": 11, "user_id": 4, "reason": "territory change", "unrelated": "dropped"},
    )

    [line] = _lines(log_stream)
    assert line["msg"] == "allocation.reassigned"
    assert line["logger"] == "opshub.allocations"
    assert line["level"] == "INFO"
    assert line["fields"] == {"customer_id": 11, "reason": "territory change", "user_id": 4}


def test_correlation_id_is_attached_from_context(log_stream: io.StringIO) -> None:
    with correlation_scope("corr-42") as correlation_id:
        assert get_correlation_id() == correlation_id == "corr-42"
        logging.getLogger("opshub.security.gate").warning("access.denied", extra={"resource": "customer"})
    assert get_correlation_id() is None

    [line] = _lines(log_stream)
    assert line["correlation_id"] == "corr-42"


def test_correlation_scope_generates_id() -> None:
    with correlation_scope() as correlation_id:
        assert correlation_id
        assert get_correlation_id() == correlation_id


def test_pii_in_fields_is_masked(log_stream: io.StringIO) -> None:
    logging.getLogger("opshub.customers").error(
        "customer.pii_unreadable",
        extra={"error": "bad row for asha@example.com / +91 98765 43210"},
    )

    [line] = _lines(log_stream)
    assert "asha@example.com" not in line["fields"]["error"]
    assert "98765" not in line["fields"]["error"]


def test_mask_pii_keeps_plain_text() -> None:
    assert mask_pii("customer 12 has 2 active allocations") == "customer 12 has 2 active allocations"
    assert mask_pii("call 9876543210") == "call [phone]"
