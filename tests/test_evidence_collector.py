"""Tests for evidence collector."""

import json
from unittest.mock import Mock

from recipe_runner.executor.evidence_collector import EvidenceCollector


def _console(msg_type: str, text: str) -> Mock:
    msg = Mock()
    msg.type = msg_type
    msg.text = text
    return msg


def _failed_request(url: str, method: str = "GET", failure="net::ERR_FAILED") -> Mock:
    request = Mock()
    request.url = url
    request.method = method
    request.failure = failure
    return request


class TestEvidenceCollector:

    def test_attach_and_detach_register_same_handlers(self, mock_page):
        collector = EvidenceCollector()
        collector.attach(mock_page)
        collector.detach(mock_page)

        attached = {c.args[0]: c.args[1] for c in mock_page.on.call_args_list}
        detached = {c.args[0]: c.args[1] for c in mock_page.remove_listener.call_args_list}
        assert set(attached) == {"console", "requestfailed"}
        assert attached == detached

    def test_console_keeps_last_ten(self):
        collector = EvidenceCollector()
        for i in range(15):
            collector._on_console(_console("log", f"message {i}"))

        assert collector.console_total == 15
        assert len(collector.console_logs) == 10
        assert collector.console_logs[0].text == "message 5"
        assert collector.console_logs[-1].text == "message 14"

    def test_network_failures_all_kept(self):
        collector = EvidenceCollector()
        for i in range(12):
            collector._on_request_failed(_failed_request(f"https://api.example.com/{i}"))
        collector._on_request_failed(_failed_request("https://cdn.example.com/x.js", failure=None))

        assert len(collector.network_errors) == 13
        assert collector.network_errors[-1].failure == ""

    def test_separate_collectors_do_not_share_entries(self):
        first, second = EvidenceCollector(), EvidenceCollector()
        first._on_console(_console("error", "boom"))
        assert list(second.console_logs) == []

    def test_detach_failure_is_ignored(self, mock_page):
        mock_page.remove_listener.side_effect = KeyError("console")
        EvidenceCollector().detach(mock_page)

    def test_save_logs(self, tmp_path):
        collector = EvidenceCollector()
        collector._on_console(_console("error", "Uncaught TypeError"))
        collector._on_request_failed(_failed_request("https://api.example.com/orders", "POST"))

        path = collector.save_logs(tmp_path / "logs", "scenario-1")
        data = json.loads(path.read_text())
        assert data["console"] == [{"type": "error", "text": "Uncaught TypeError"}]
        assert data["network_errors"][0]["method"] == "POST"
