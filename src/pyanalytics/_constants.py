"""Internal constants shared across the library."""

LIBRARY_NAME = "analytics-python"

DEFAULT_ENDPOINT = "https://api.segment.io"
UPLOAD_PATH = "/v1/import"

DEFAULT_FLUSH_QUEUE_SIZE = 20
DEFAULT_FLUSH_INTERVAL = 30
MIN_FLUSH_INTERVAL = 10

#: Resource key the host is asked for when the singleton is created lazily.
WRITE_KEY_RESOURCE_IDENTIFIER = "analytics_write_key"

#: Permission the host must grant before an instance can be built.
PERMISSION_INTERNET = "internet"

THREAD_PREFIX = "pyanalytics-"

# ------------------------------------------------------------------
# Debug log vocabulary
# ------------------------------------------------------------------

OWNER_MAIN = "Main"
OWNER_DISPATCHER = "Dispatcher"
OWNER_INTEGRATION_MANAGER = "IntegrationManager"

VERB_CREATE = "create"
VERB_DISPATCH = "dispatch"
VERB_ENQUEUE = "enqueue"
VERB_FLUSH = "flush"
VERB_SKIP = "skip"

# ------------------------------------------------------------------
# Bundled integrations (closed set of capability keys)
# ------------------------------------------------------------------

BUNDLED_INTEGRATION_KEYS: frozenset[str] = frozenset(
    {
        "Amplitude",
        "AppsFlyer",
        "Bugsnag",
        "Countly",
        "Crittercism",
        "Flurry",
        "Google Analytics",
        "Kahuna",
        "Leanplum",
        "Localytics",
        "Mixpanel",
        "Quantcast",
        "Tapstream",
    }
)


def is_null_or_empty(text: str | None) -> bool:
    """Return ``True`` if *text* is ``None`` or blank once stripped."""
    return text is None or not text.strip()
