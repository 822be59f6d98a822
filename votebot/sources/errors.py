from __future__ import annotations


class FetchFailure(Exception):
    """Base error for a ranking source that could not be read."""

    def __init__(self, url: str, detail: str = "") -> None:
        super().__init__(f"{url}: {detail}" if detail else url)
        self.url = url
        self.detail = detail


class NetworkFailure(FetchFailure):
    pass


class StatusFailure(FetchFailure):
    def __init__(self, url: str, status_code: int, reason: str = "") -> None:
        super().__init__(url, f"HTTP {status_code} {reason}".strip())
        self.status_code = status_code
        self.reason = reason


class ShapeFailure(FetchFailure):
    pass


def parse_fetch_failure(failure: Exception) -> str:
    """
    Map a source failure into a short, human-readable message.
    Used for admin notifications and logs.
    """
    if isinstance(failure, StatusFailure):
        if failure.status_code == 429:
            return f"⚠️ Rate Limited: {failure.url} is throttling requests."
        if failure.status_code in (401, 403):
            return f"❌ Forbidden: {failure.url} refused access (HTTP {failure.status_code})."
        if failure.status_code == 404:
            return f"❌ Not Found: {failure.url} does not exist."
        return f"❌ Bad Status: {failure.url} answered {failure.detail}."
    if isinstance(failure, NetworkFailure):
        return f"❌ Connection Error: Unable to reach {failure.url} ({failure.detail})."
    if isinstance(failure, ShapeFailure):
        return f"❌ Invalid Response: {failure.url} {failure.detail}."
    s, t = str(failure), type(failure).__name__
    return f"❌ {t}: {s.split(chr(10))[0][:100]}"
