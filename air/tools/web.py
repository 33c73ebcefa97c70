"""
Web Tool - fetch a page and extract readable text.

HTML is parsed with BeautifulSoup; scripts, styles and navigation chrome
are dropped before the text is collected.
"""

import logging
from typing import List, Optional, Tuple

import httpx
from bs4 import BeautifulSoup

from air.core.exceptions import ToolExecutionError
from air.tools.base import Tool, ToolResult

logger = logging.getLogger("air.tools.web")

MAX_TEXT_CHARS = 4000
SUMMARY_PARAGRAPHS = 5
USER_AGENT = "air-agent/0.1 (+https://github.com/air-agent/air)"


def extract_text(html: str) -> Tuple[str, List[str]]:
    """Return (title, paragraphs) from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style", "noscript", "nav", "footer", "header", "aside"]):
        element.decompose()

    title = soup.title.get_text(strip=True) if soup.title else ""
    paragraphs = [p.get_text(" ", strip=True) for p in soup.find_all(["h1", "h2", "h3", "p", "li"])]
    paragraphs = [p for p in paragraphs if p]
    if not paragraphs:
        body = soup.get_text("\n", strip=True)
        paragraphs = [line for line in body.splitlines() if line]
    return title, paragraphs


class WebTool(Tool):
    name = "web"
    description = "Fetch web pages and extract their content"
    functions = {
        "fetch": "Download a page and return its text. Args: url",
        "summarize": "Title plus the leading paragraphs of a page. Args: url",
    }
    returns_raw = True

    def __init__(self, timeout: float = 15.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    async def _download(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(
            transport=self._transport,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            try:
                response = await client.get(url, timeout=self.timeout)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ToolExecutionError(f"{url} returned HTTP {e.response.status_code}", self.name) from e
            except httpx.RequestError as e:
                logger.error(f"Network error fetching {url}: {e}")
                raise ToolExecutionError(f"Could not fetch {url}: {e}", self.name) from e
        return response

    async def _fetch(self, url: str) -> ToolResult:
        response = await self._download(url)
        content_type = response.headers.get("content-type", "")

        if "html" in content_type:
            title, paragraphs = extract_text(response.text)
            text = "\n".join(paragraphs)
        else:
            title, text = "", response.text

        if len(text) > MAX_TEXT_CHARS:
            text = text[:MAX_TEXT_CHARS] + "\n... (truncated)"
        body = f"{title}\n\n{text}" if title else text
        return ToolResult(
            success=True,
            result=body,
            metadata={"url": str(response.url), "status": response.status_code, "title": title},
        )

    async def _summarize(self, url: str) -> ToolResult:
        response = await self._download(url)
        title, paragraphs = extract_text(response.text)
        lead = [p for p in paragraphs if len(p) > 40][:SUMMARY_PARAGRAPHS] or paragraphs[:SUMMARY_PARAGRAPHS]
        lines = [f"Title: {title or url}", ""] + [f"• {p}" for p in lead]
        return ToolResult(
            success=True,
            result="\n".join(lines),
            metadata={"url": str(response.url), "title": title},
        )
