import logging
from typing import Any, Callable, Optional

import httpx
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .exceptions import FetchError
from .schema.coerce import type_includes
from .schema.extractor import iter_json_ld, parse_json_ld

# Same predicate as declares_recipe(), evaluated in the live DOM.
RECIPE_MARKUP_SCRIPT = """
() => {
  const isRecipe = (node) => {
    if (!node || typeof node !== "object") return false;
    if (Array.isArray(node)) return node.some(isRecipe);
    const type = node["@type"];
    if (type === "Recipe" || (Array.isArray(type) && type.includes("Recipe"))) return true;
    return Array.isArray(node["@graph"]) && node["@graph"].some(isRecipe);
  };
  const scripts = document.querySelectorAll('script[type^="application/ld+json"]');
  return Array.from(scripts).some((script) => {
    try {
      return isRecipe(JSON.parse(script.textContent || "{}"));
    } catch (e) {
      return false;
    }
  });
}
"""


def declares_recipe(document: Any) -> bool:
    """Cheap check for a Recipe type anywhere at the top of a JSON-LD value."""
    if isinstance(document, list):
        return any(declares_recipe(item) for item in document)
    if not isinstance(document, dict):
        return False
    if type_includes(document.get("@type"), "Recipe"):
        return True
    graph = document.get("@graph")
    return isinstance(graph, list) and any(declares_recipe(item) for item in graph)


def has_recipe_markup(html: str) -> bool:
    """Tell whether a page exposes any JSON-LD block typed as a Recipe."""
    soup = BeautifulSoup(html, "html.parser")
    return any(declares_recipe(parse_json_ld(text)) for text in iter_json_ld(soup))


class PageFetcher:
    """Fetches recipe pages, rendering them in a headless browser when needed."""

    def __init__(
        self,
        timeout: float = 30.0,
        render_timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        browser_factory: Optional[Callable[[], Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Timeout in seconds for the static fetch and browser navigation
            render_timeout: How long to wait for recipe markup in the rendered page
            client: Optional httpx client to use instead of a private one
            browser_factory: Factory returning a Playwright context manager
            logger: Logger to report tier decisions to
        """
        self.headers = {
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
        self.timeout = timeout
        self.render_timeout = render_timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers=self.headers,
            follow_redirects=True,
            timeout=timeout,
        )
        self.browser_factory = browser_factory or async_playwright
        self.logger = logger or logging.getLogger(__name__)

    async def fetch(self, url: str) -> str:
        """
        Return the HTML of a page with its recipe markup visible.

        Args:
            url: The URL to fetch

        Returns:
            The static HTML if it already carries recipe markup, otherwise the
            browser-rendered HTML

        Raises:
            FetchError: If the browser render fails or times out
        """
        html = await self._fetch_static(url)
        if html is not None:
            self.logger.info(f"Recipe markup found in static HTML for {url}")
            return html

        return await self._fetch_rendered(url)

    async def _fetch_static(self, url: str) -> Optional[str]:
        """Return the static HTML when it already carries recipe markup, else None."""
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            html = response.text
            if has_recipe_markup(html):
                return html
        except Exception as e:
            # invalid URLs and IDNA errors are not httpx.HTTPError subclasses
            self.logger.info(f"Static fetch failed for {url} ({e}), rendering in browser")
            return None

        self.logger.info(f"No recipe markup in static HTML for {url}, rendering in browser")
        return None

    async def _fetch_rendered(self, url: str) -> str:
        timeout_ms = self.timeout * 1000
        try:
            async with self.browser_factory() as playwright:
                browser = await playwright.chromium.launch(headless=True)
                try:
                    page = await browser.new_page()
                    await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                    await page.wait_for_function(
                        RECIPE_MARKUP_SCRIPT, timeout=self.render_timeout * 1000
                    )
                    html = await page.content()
                finally:
                    await browser.close()
        except PlaywrightError as e:
            raise FetchError(
                f"Failed to render {url}: {e}",
                details={"url": url},
            ) from e

        self.logger.info(f"Rendered {url} in browser ({len(html)} bytes)")
        return html

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        """Support for async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Clean up resources."""
        await self.aclose()
