"""Tests for projectflow.requirements module."""

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

from projectflow.core.config import AppSettings
from projectflow.requirements import (
    HttpRequirementsParser,
    LineRequirementsParser,
    RequirementsParser,
    get_parser,
)


class TestLineRequirementsParser:
    """Tests for the local splitter."""

    def test_numbered_lines(self):
        text = "1. User authentication\n2) Realtime sync\n\n3. Export to CSV"
        assert LineRequirementsParser().parse(text) == [
            "User authentication",
            "Realtime sync",
            "Export to CSV",
        ]

    def test_bullets(self):
        assert LineRequirementsParser().parse("- Login\n* Logout\n• Reset") == ["Login", "Logout", "Reset"]

    def test_single_paragraph_splits_sentences(self):
        text = "Users can sign in. Projects sync in real time! Is export supported?"
        assert LineRequirementsParser().parse(text) == [
            "Users can sign in.",
            "Projects sync in real time!",
            "Is export supported?",
        ]

    def test_empty(self):
        assert LineRequirementsParser().parse("   ") == []


def _response(payload):
    response = MagicMock()
    response.read.return_value = json.dumps(payload).encode("utf-8")
    response.__enter__.return_value = response
    return response


class TestHttpRequirementsParser:
    """Tests for the remote parser."""

    def test_posts_text_and_reads_list(self):
        parser = HttpRequirementsParser("https://parse.example/api")
        with patch("urllib.request.urlopen", return_value=_response({"requirements": ["A", " B ", ""]})) as urlopen:
            assert parser.parse("A. B.") == ["A", "B"]

        request = urlopen.call_args[0][0]
        assert request.get_method() == "POST"
        assert json.loads(request.data) == {"sentences": "A. B."}

    def test_network_error_returns_empty(self):
        parser = HttpRequirementsParser("https://parse.example/api")
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
            assert parser.parse("anything") == []

    def test_bad_payload_returns_empty(self):
        parser = HttpRequirementsParser("https://parse.example/api")
        with patch("urllib.request.urlopen", return_value=_response({"items": []})):
            assert parser.parse("anything") == []

    def test_non_json_returns_empty(self):
        response = MagicMock()
        response.read.return_value = b"<html>"
        response.__enter__.return_value = response
        parser = HttpRequirementsParser("https://parse.example/api")
        with patch("urllib.request.urlopen", return_value=response):
            assert parser.parse("anything") == []


class TestGetParser:
    """Tests for get_parser."""

    def test_local_by_default(self):
        parser = get_parser(AppSettings())
        assert isinstance(parser, LineRequirementsParser)
        assert isinstance(parser, RequirementsParser)

    def test_http_when_endpoint_configured(self):
        parser = get_parser(AppSettings(requirements_endpoint="https://parse.example/api"))
        assert isinstance(parser, HttpRequirementsParser)
        assert parser.endpoint == "https://parse.example/api"
