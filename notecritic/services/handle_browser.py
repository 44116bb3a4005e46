"""Browser Handlers — web_browser: fetch a page and return its readable text.

Invariants:
    - Never raises for fetch failures: returns {"success": False, "status", "content"}
    - Text mode drops <script>/<style> content and collapses whitespace
    - Returned content is truncated to max_chars (keeps tool results within context)
"""

import logging
import re
from html.parser import HTMLParser

import httpx

logger = logging.getLogger(__name__)

_SKIPPED_TAGS = frozenset({"script", "style", "noscript"})
_WHITESPACE = re.compile(r"\s+")


class _TextExtractor(HTMLParser):
    def __init__(self):
        super().__init__()
        self.parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in _SKIPPED_TAGS and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            self.parts.append(data)


def extract_text_content(html: str) -> str:
    parser = _TextExtractor()
    parser.feed(html)
    parser.close()
    return _WHITESPACE.sub(" ", " ".join(parser.parts)).strip()


class BrowserHandlers:
    """Page fetching over a shared httpx client."""

    def __init__(self, client: httpx.AsyncClient, max_chars: int = 20_000):
        self.client = client
        self.max_chars = max_chars

    async def web_browser(self, input_data: dict) -> dict:
        url = (input_data or {}).get("url")
        if not url:
            return {
                "status": "error", "error_code": "INVALID_INPUT",
                "message": "web_browser requires a url",
            }
        full_html = bool(input_data.get("fullHtml", False))
        try:
            response = await self.client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.warning("web_browser fetch failed: %s", e, extra={"tool_name": "web_browser"})
            return {"success": False, "status": 500, "content": str(e)}
        text = response.text if full_html else extract_text_content(response.text)
        return {
            "success": response.is_success,
            "status": response.status_code,
            "content": text[: self.max_chars],
        }
