import logging

from logging_config import SensitiveDataFilter


def _record(msg, *args):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_masks_passwords_and_tokens():
    f = SensitiveDataFilter()
    record = _record("login password=hunter2 token=abc.def")
    f.filter(record)
    assert "hunter2" not in record.getMessage()
    assert "abc.def" not in record.getMessage()


def test_masks_bearer_in_args():
    f = SensitiveDataFilter()
    record = _record("headers: %s", "Authorization: Bearer eyJhbGciOi")
    f.filter(record)
    assert "eyJhbGciOi" not in record.getMessage()
    assert "Bearer ***" in record.getMessage()


def test_leaves_other_messages_alone():
    f = SensitiveDataFilter()
    record = _record("Reserva creada: id=%s", 7)
    assert f.filter(record) is True
    assert record.getMessage() == "Reserva creada: id=7"
