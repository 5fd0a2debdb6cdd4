"""Outbound request shaping for the schedule upstream.

The university site intermittently rejects requests that do not look like a
browser. Headers are picked per attempt from a small table of browser
profiles so retries do not repeat the exact same fingerprint. Client-IP
headers are best effort and only sent when enabled in config.
"""

import random

BROWSER_PROFILES: tuple[dict[str, str], ...] = (
    {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/139.0 Safari/537.36"
        ),
        "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
        "Sec-Ch-Ua-Platform": '"Windows"',
    },
    {
        "User-Agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_5) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/17.5 Safari/605.1.15"
        ),
        "Accept-Language": "ru-RU,ru;q=0.9",
    },
    {
        "User-Agent": (
            "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"
        ),
        "Accept-Language": "ru,en-US;q=0.7,en;q=0.3",
    },
)

# Accept headers per resource kind.
ACCEPT_BY_KIND: dict[str, str] = {
    "page": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "document": (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet,"
        "application/vnd.ms-excel;q=0.9,application/octet-stream;q=0.8,*/*;q=0.5"
    ),
}

CLIENT_IP_HEADERS: frozenset[str] = frozenset(
    {"X-Forwarded-For", "X-Real-IP", "Client-IP"}
)


class RequestShaper:
    """Builds the header set for one retrieval attempt."""

    def __init__(
        self,
        profiles: tuple[dict[str, str], ...] = BROWSER_PROFILES,
        *,
        spoof_client_ip: bool = False,
        client_ip_pool: list[str] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if not profiles:
            raise ValueError("at least one browser profile is required")
        self.profiles = profiles
        self.spoof_client_ip = spoof_client_ip
        self.client_ip_pool = list(client_ip_pool or [])
        self.rng = rng or random.Random()

    def headers_for(self, kind: str = "document", referer: str | None = None) -> dict[str, str]:
        """Return headers for a request of the given kind ("page" or "document").

        Args:
            kind: Resource kind, selects the Accept header.
            referer: Page the request claims to come from, if any.
        """
        headers = dict(self.rng.choice(self.profiles))
        headers["Accept"] = ACCEPT_BY_KIND.get(kind, "*/*")
        headers.setdefault("Accept-Language", "ru-RU,ru;q=0.9")
        headers["Cache-Control"] = "no-cache"
        if referer:
            headers["Referer"] = referer

        if self.spoof_client_ip and self.client_ip_pool:
            address = self.rng.choice(self.client_ip_pool)
            for name in sorted(CLIENT_IP_HEADERS):
                headers[name] = address

        return headers
