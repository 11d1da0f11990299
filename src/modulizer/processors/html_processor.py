"""HTML processor for legacy HTML-import documents.

Extracts the two things the converter needs from an HTML document: the
``<link rel="import" href="...">`` links declaring dependencies on other
documents and the bodies of inline ``<script>`` elements, both in document
order. Everything else (templates, styles, markup) is ignored.

Example:
    >>> extraction = HtmlProcessor().extract('<link rel="import" href="./dep.html"><script>x();</script>')
    >>> extraction.links
    ['./dep.html']
    >>> extraction.scripts
    ['x();']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser

from modulizer.utils.logger import get_logger

logger = get_logger("modulizer.processors.html_processor")

# Script types treated as classic JavaScript
JAVASCRIPT_TYPES = frozenset({
    "",
    "text/javascript",
    "application/javascript",
    "application/ecmascript",
    "text/ecmascript",
})


@dataclass
class HtmlExtraction:
    """Links and inline scripts of one HTML document.

    Attributes:
        links: ``href`` values of HTML import links, in order
        scripts: Inline script bodies, in order
        script_lines: 1-based line of the opening tag of each inline script
        external_scripts: ``src`` values of external scripts (not converted)
    """

    links: list[str] = field(default_factory=list)
    scripts: list[str] = field(default_factory=list)
    script_lines: list[int] = field(default_factory=list)
    external_scripts: list[str] = field(default_factory=list)


class _ImportCollector(HTMLParser):
    """Streaming collector behind :class:`HtmlProcessor`."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.extraction = HtmlExtraction()
        self._script_parts: list[str] | None = None
        self._script_line = 1

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes = {name.lower(): (value or "") for name, value in attrs}

        if tag == "link":
            rel = attributes.get("rel", "").lower().split()
            href = attributes.get("href", "")
            if "import" in rel and href:
                self.extraction.links.append(href)
            return

        if tag == "script":
            script_type = attributes.get("type", "").strip().lower()
            if script_type not in JAVASCRIPT_TYPES:
                return
            if "src" in attributes:
                self.extraction.external_scripts.append(attributes["src"])
                return
            self._script_parts = []
            self._script_line = self.getpos()[0]

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        # <link ... /> and <script ... /> carry no body
        self.handle_starttag(tag, attrs)
        if tag == "script":
            self._finish_script()

    def handle_data(self, data: str) -> None:
        if self._script_parts is not None:
            self._script_parts.append(data)

    def handle_endtag(self, tag: str) -> None:
        if tag == "script":
            self._finish_script()

    def _finish_script(self) -> None:
        if self._script_parts is not None:
            self.extraction.scripts.append("".join(self._script_parts))
            self.extraction.script_lines.append(self._script_line)
        self._script_parts = None


class HtmlProcessor:
    """Extracts import links and inline scripts from HTML text."""

    def extract(self, html: str, origin: str = "<html>") -> HtmlExtraction:
        """Scan an HTML document.

        Args:
            html: Document text
            origin: Document key used in log messages

        Returns:
            HtmlExtraction with links and scripts in document order
        """
        collector = _ImportCollector()
        collector.feed(html)
        collector.close()
        # An unterminated trailing <script> still counts
        collector._finish_script()

        extraction = collector.extraction
        for src in extraction.external_scripts:
            logger.warning(f"External script '{src}' in {origin} is not converted")

        logger.debug(
            f"Extracted {len(extraction.links)} import links and "
            f"{len(extraction.scripts)} inline scripts from {origin}"
        )
        return extraction
