import logging

from recording_proxy import LoggingEmitter, RedirectRecord


def test_logging_emitter_writes_one_line(caplog):
    record = RedirectRecord(
        method="GET",
        original_url="https://storage.example.com/table1/entity1",
        proxied_url="https://localhost:5001/table1/entity1",
        upstream_base_uri="https://storage.example.com/table1",
        recording_id="abc123",
        mode="record",
    )

    with caplog.at_level(logging.DEBUG, logger="recording_proxy.emitter"):
        LoggingEmitter().emit(record)

    (line,) = caplog.records
    assert line.levelno == logging.DEBUG
    assert "https://localhost:5001/table1/entity1" in line.getMessage()
    assert "abc123" in line.getMessage()
