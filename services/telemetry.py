# services/telemetry.py - read-only environment snapshot shown on the results page
from datetime import datetime, timezone

UNKNOWN = "unknown"

# form field posted by the quiz page script -> snapshot key
CLIENT_FIELDS = {
    "client_screen": "screen_resolution",
    "client_color_depth": "color_depth",
    "client_language": "language",
    "client_platform": "platform",
    "client_cookies_enabled": "cookies_enabled",
    "client_timezone": "timezone",
}


def _clean(value) -> str:
    if value is None:
        return UNKNOWN
    value = str(value).strip()
    return value[:512] if value else UNKNOWN


def capture_environment(request) -> dict:
    """Snapshot what the browser revealed during the visit.

    Values come from request headers and from hidden fields the quiz page
    fills in from the browser. Anything missing or unreadable is "unknown";
    this never raises.
    """
    snapshot = {key: UNKNOWN for key in CLIENT_FIELDS.values()}
    snapshot["user_agent"] = UNKNOWN
    snapshot["timestamp"] = datetime.now(timezone.utc).isoformat()

    try:
        snapshot["user_agent"] = _clean(request.headers.get("User-Agent"))
    except Exception:
        pass

    try:
        form = request.form
    except Exception:
        form = {}
    for field_name, key in CLIENT_FIELDS.items():
        try:
            snapshot[key] = _clean(form.get(field_name))
        except Exception:
            snapshot[key] = UNKNOWN

    if snapshot["cookies_enabled"] != UNKNOWN:
        snapshot["cookies_enabled"] = "yes" if snapshot["cookies_enabled"].lower() in ("1", "true", "yes") else "no"

    # Fall back to the Accept-Language header when the page script did not run
    if snapshot["language"] == UNKNOWN:
        try:
            snapshot["language"] = _clean(request.accept_languages.best)
        except Exception:
            pass

    return snapshot
