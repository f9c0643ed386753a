import json
import logging

from core.logging import JSONFormatter, TextFormatter


def _record(**extra):
    record = logging.LogRecord("services.test", logging.INFO, __file__, 10, "Awarded %s XP", (5,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extra_fields():
    line = JSONFormatter().format(_record(extra_fields={"user_id": "athlete-1", "points": 5}))
    payload = json.loads(line)

    assert payload["message"] == "Awarded 5 XP"
    assert payload["level"] == "INFO"
    assert payload["service"] == "findplayer-challenges"
    assert payload["user_id"] == "athlete-1"
    assert payload["points"] == 5


def test_text_formatter_appends_context():
    line = TextFormatter().format(_record(extra_fields={"step": "notify"}))
    assert line.endswith("| step=notify")
    assert "Awarded 5 XP" in line


def test_request_id_header(client):
    response = client.get("/ping", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
