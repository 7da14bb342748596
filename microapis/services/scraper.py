"""Web page scraping: title, meta description, headings, and links."""

from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from microapis.exceptions import InvalidInputError, UpstreamError
from microapis.utils.config import ScraperConfig
from microapis.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Link:
    text: str
    href: str


@dataclass
class ScrapeResult:
    """Summary of a scraped page."""

    url: str
    title: str
    meta_description: str
    h1_tags: list[str] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)


def parse_page(url: str, html: str) -> ScrapeResult:
    """Extract the page summary from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")

    title = soup.title.get_text() if soup.title else ""
    meta = soup.find("meta", attrs={"name": "description"})
    description = meta.get("content", "") if meta else ""

    return ScrapeResult(
        url=url,
        title=title,
        meta_description=description,
        h1_tags=[h1.get_text().strip() for h1 in soup.find_all("h1")],
        links=[
            Link(text=a.get_text().strip(), href=a["href"])
            for a in soup.find_all("a", href=True)
        ],
    )


class WebScraper:
    """Fetches pages over HTTP and summarises them.

    Args:
        config: Timeout and user agent settings.
        transport: Optional httpx transport, used to stub sites in tests.
    """

    def __init__(
        self,
        config: ScraperConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            timeout=config.timeout_seconds,
            transport=transport,
            follow_redirects=True,
            headers={"User-Agent": config.user_agent},
        )

    def scrape(self, url: str) -> ScrapeResult:
        """Fetch ``url`` and return its summary.

        Raises:
            InvalidInputError: If the URL is missing or not http(s).
            UpstreamError: If the page cannot be fetched.
        """
        if not url:
            raise InvalidInputError("Missing ?url query param")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidInputError("URL must be an absolute http(s) address")

        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Scrape of %s failed: %s", url, exc)
            raise UpstreamError("Failed to scrape the site") from exc

        result = parse_page(url, response.text)
        logger.info("Scraped %s: %d h1 tags, %d links", url, len(result.h1_tags), len(result.links))
        return result

    def close(self) -> None:
        self._client.close()
