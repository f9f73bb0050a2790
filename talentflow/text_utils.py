import re

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def strip_json_fence(raw: str) -> str:
    """Return raw text with optional ```json fences removed."""
    text = (raw or "").strip()
    match = _JSON_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def first_name_of(full_name: str) -> str:
    """First whitespace-separated token of a full name, or the empty string."""
    parts = (full_name or "").split()
    return parts[0] if parts else ""


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()
