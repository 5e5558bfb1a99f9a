import json
from unittest.mock import patch

from telco.observability.logging import log
from telco.settings import settings


def _last_line(capsys):
    out = capsys.readouterr().out.strip().splitlines()
    return json.loads(out[-1])


def test_log_redacts_client_fields(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", True):
        log("client_registered", clientKey="C1", name="Ana", taxId=123)
    line = _last_line(capsys)
    assert line["event"] == "client_registered"
    assert line["clientKey"] == "C1"
    assert line["name"] == "[REDACTED:3chars]"
    assert line["taxId"] == "[REDACTED]"
    assert isinstance(line["ts"], int)


def test_log_redacts_nested(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", True):
        log("snapshot", client={"key": "C1", "name": "Ana"})
    line = _last_line(capsys)
    assert line["client"] == {"key": "C1", "name": "[REDACTED:3chars]"}


def test_log_plain_when_redaction_disabled(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", False):
        log("text_sent", message="hello", cost=10.0)
    line = _last_line(capsys)
    assert line["message"] == "hello"
    assert line["cost"] == 10.0
