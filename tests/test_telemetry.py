"""Environment snapshot: read-only, never raises, unknown when missing."""

from flask import Flask

from services.telemetry import UNKNOWN, capture_environment


def _snapshot(**kwargs):
    app = Flask(__name__)
    with app.test_request_context("/question", method="POST", **kwargs) as ctx:
        return capture_environment(ctx.request)


def test_missing_values_are_unknown():
    snap = _snapshot()
    for key in ("screen_resolution", "color_depth", "language", "platform", "cookies_enabled", "timezone"):
        assert snap[key] == UNKNOWN, key
    assert snap["timestamp"]


def test_client_fields_and_headers():
    snap = _snapshot(
        headers={"User-Agent": "Mozilla/5.0 (X11; Linux x86_64)", "Accept-Language": "de-DE,de;q=0.9"},
        data={
            "client_screen": "2560x1440",
            "client_color_depth": "24",
            "client_platform": "Linux x86_64",
            "client_cookies_enabled": "true",
            "client_timezone": "Europe/Berlin",
        },
    )
    assert snap["user_agent"] == "Mozilla/5.0 (X11; Linux x86_64)"
    assert snap["screen_resolution"] == "2560x1440"
    assert snap["color_depth"] == "24"
    assert snap["platform"] == "Linux x86_64"
    assert snap["cookies_enabled"] == "yes"
    assert snap["timezone"] == "Europe/Berlin"
    # falls back to the Accept-Language header
    assert snap["language"] == "de-DE"


def test_client_language_wins_over_header():
    snap = _snapshot(headers={"Accept-Language": "fr"}, data={"client_language": "en-GB"})
    assert snap["language"] == "en-GB"


def test_blank_and_oversized_values():
    snap = _snapshot(data={"client_platform": "   ", "client_timezone": "x" * 2000, "client_cookies_enabled": "false"})
    assert snap["platform"] == UNKNOWN
    assert len(snap["timezone"]) == 512
    assert snap["cookies_enabled"] == "no"


def test_unreadable_request_degrades():
    class Broken:
        @property
        def headers(self):
            raise RuntimeError("no headers")

        @property
        def form(self):
            raise RuntimeError("no form")

        @property
        def accept_languages(self):
            raise RuntimeError("no languages")

    snap = capture_environment(Broken())
    assert snap["user_agent"] == UNKNOWN
    assert snap["language"] == UNKNOWN
