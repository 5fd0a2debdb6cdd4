"""Locates the current schedule spreadsheet on the university's source page.

The page is fetched once (no retries) and its hyperlinks are scanned in
document order. A page that cannot be fetched or parsed is not fatal: the
configured fallback URL is returned so retrieval can still be attempted.
"""

from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from src.timetable.config import TimetableConfig, get_config
from src.timetable.errors import (
    LocatorFailure,
    NotFoundFailure,
    OversizedResponse,
    RetrievalFailure,
)
from src.timetable.logging import get_logger
from src.timetable.retrieval import Fetcher

log = get_logger(__name__)

FOLLOWABLE_SCHEMES: frozenset[str] = frozenset({"http", "https"})


class DocumentLocator:
    """Finds the absolute spreadsheet URL published on a source page."""

    def __init__(self, fetcher: Fetcher, config: TimetableConfig | None = None) -> None:
        self.fetcher = fetcher
        self.config = config or get_config()

    def locate(self, page_url: str) -> str:
        """Return the spreadsheet URL linked from ``page_url``.

        Args:
            page_url: Absolute URL of the source page.

        Returns:
            The first matching link, or the configured fallback URL.

        Raises:
            NotFoundFailure: If nothing matched and no fallback is configured.
        """
        try:
            found = self._scan_page(page_url)
        except LocatorFailure as e:
            log.warning("locator_failed", page_url=page_url, error=str(e))
            found = None

        if found:
            log.info("document_located", page_url=page_url, document_url=found)
            return found

        fallback = self.config.fallback_document_url
        if not fallback:
            raise NotFoundFailure(
                f"No spreadsheet link found on {page_url} and no fallback URL configured"
            )
        log.info("document_fallback_used", page_url=page_url, document_url=fallback)
        return fallback

    def _scan_page(self, page_url: str) -> str | None:
        try:
            html = self.fetcher.fetch(page_url, kind="page", max_attempts=1)
        except RetrievalFailure as e:
            raise LocatorFailure(f"Source page unreachable: {e}") from e
        except OversizedResponse as e:
            raise LocatorFailure(f"Source page rejected: {e}") from e

        try:
            return self.find_document_link(html, page_url)
        except Exception as e:  # bs4 raises a variety of parser errors
            raise LocatorFailure(f"Source page unparsable: {e}") from e

    def find_document_link(self, html: bytes | str, page_url: str) -> str | None:
        """Pick the spreadsheet link out of a page's HTML.

        Links are resolved against ``page_url``; hrefs that fail to resolve or
        point at non-http(s) targets are skipped. A link matches when its path
        ends with a known spreadsheet extension or its text contains the
        configured phrase. With ``accept_any_link`` the first resolvable link
        is used when none match.
        """
        soup = BeautifulSoup(html, "html.parser")
        extensions = tuple(ext.lower() for ext in self.config.link_extensions)
        phrase = self.config.link_text_phrase.casefold().strip()

        first_resolvable: str | None = None
        for anchor in soup.find_all("a", href=True):
            absolute = _resolve(page_url, anchor["href"])
            if absolute is None:
                continue
            if first_resolvable is None:
                first_resolvable = absolute

            path = urlparse(absolute).path.lower()
            text = anchor.get_text(" ", strip=True).casefold()
            if (extensions and path.endswith(extensions)) or (phrase and phrase in text):
                return absolute

        if self.config.accept_any_link and first_resolvable:
            log.debug("locator_weak_match", document_url=first_resolvable)
            return first_resolvable
        return None


def _resolve(page_url: str, href: str) -> str | None:
    """Absolute http(s) URL for ``href``, or None if it can't be resolved."""
    href = href.strip()
    if not href or href.startswith("#"):
        return None
    try:
        absolute = urljoin(page_url, href)
        parsed = urlparse(absolute)
        _ = parsed.port  # raises ValueError on malformed ports
    except ValueError:
        log.debug("href_unresolvable", href=href)
        return None
    if parsed.scheme not in FOLLOWABLE_SCHEMES or not parsed.netloc:
        return None
    return absolute
