import logging

from flask import g

from kars_app.log import RequestIdFilter, logger, setup_logging


def make_record():
    return logging.LogRecord("kars", logging.INFO, __file__, 1, "hello", None, None)


def test_records_inside_a_request_carry_its_id(make_client):
    app = make_client({}).application
    with app.test_request_context("/api/health"):
        g.request_id = "abc123def456"
        record = make_record()
        assert RequestIdFilter().filter(record)
        assert record.request_tag == "[abc123def456] "


def test_records_outside_a_request_are_untagged():
    record = make_record()
    RequestIdFilter().filter(record)
    assert record.request_tag == ""


def test_setup_logging_is_idempotent():
    before = list(logger.handlers)
    setup_logging()
    setup_logging()
    assert logger.handlers == before
    assert logging.getLogger("kars_app").handlers == before
