import logging

from src.api.middleware import RequestIdFilter, request_id_var


def make_record() -> logging.LogRecord:
    return logging.LogRecord("wallet", logging.INFO, __file__, 1, "hello", None, None)


def test_records_carry_current_request_id():
    token = request_id_var.set("req-42")
    try:
        record = make_record()
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "req-42"
    finally:
        request_id_var.reset(token)


def test_records_outside_a_request_get_placeholder():
    record = make_record()

    RequestIdFilter().filter(record)

    assert record.request_id == "-"
