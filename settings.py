import os
from typing import Optional

# All runtime configuration comes from the environment. Nothing here is secret;
# user credentials live in the persisted state file, not in env vars.
STATE_FILE = os.environ.get("AUTODEPLOY_STATE_FILE", os.path.join(".autodeploy", "state.json"))

# Used when the user leaves the Gemini key blank in the wizard
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE = os.environ.get("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")

GITHUB_API_BASE = os.environ.get("GITHUB_API_BASE", "https://api.github.com")
VERCEL_API_BASE = os.environ.get("VERCEL_API_BASE", "https://api.vercel.com")
HOSTING_DOMAIN = os.environ.get("HOSTING_DOMAIN", "vercel.app")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    # Unset or blank means requests waits indefinitely
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"AUTODEPLOY_HTTP_TIMEOUT must be a number of seconds, got {raw!r}")
    return value if value > 0 else None


HTTP_TIMEOUT = _parse_timeout(os.environ.get("AUTODEPLOY_HTTP_TIMEOUT"))
