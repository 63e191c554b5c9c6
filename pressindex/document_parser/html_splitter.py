"""
HTML content splitter.

Turns a document's HTML into an ordered list of size-bounded fragments.
Fragments are cut at section headings first and at the character budget
second, and always between block-level units (paragraphs, lists, headings),
never inside one. A single unit longer than the budget becomes a fragment of
its own rather than being truncated.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import NavigableString, Tag, Comment, Doctype, ProcessingInstruction, Declaration

from ..config import DEFAULT_CONTENT_LIMIT, DEFAULT_HEADING_LEVEL, get_logger

logger = get_logger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"

# Removed together with their content
DISCARDED_TAGS = ('head', 'title', 'script', 'style', 'noscript', 'template', 'iframe', 'svg', 'canvas', 'form', 'button')

HEADING_TAGS = ('h1', 'h2', 'h3', 'h4', 'h5', 'h6')
LIST_TAGS = ('ul', 'ol')

# Wrappers that are descended into when they hold block-level children
CONTAINER_TAGS = ('html', 'body', 'div', 'section', 'article', 'main', 'header', 'footer', 'aside', 'nav', 'figure')

BLOCK_TAGS = HEADING_TAGS + LIST_TAGS + CONTAINER_TAGS + (
    'p', 'blockquote', 'pre', 'table', 'dl', 'hr', 'figcaption', 'address', 'details', 'fieldset',
)

# Blocks whose text is read as one inline run
INLINE_TEXT_TAGS = HEADING_TAGS + CONTAINER_TAGS + ('p', 'pre', 'figcaption', 'address')

_WHITESPACE = re.compile(r'\s+')
_BLANK_LINE = re.compile(r'\n\s*\n')
_TAG = re.compile(r'<[^>]*>')


@dataclass
class Fragment:
    """One piece of a document's content."""
    content: str
    subtitle: Optional[str] = None


@dataclass
class ContentUnit:
    """A block-level piece of text, the smallest thing the splitter moves around."""
    tag: str
    text: str


@dataclass
class _Buffer:
    subtitle: Optional[str] = None
    parts: List[str] = field(default_factory=list)

    def length_with(self, text: str) -> int:
        return len(PARAGRAPH_SEPARATOR.join(self.parts + [text]))

    @property
    def length(self) -> int:
        return len(PARAGRAPH_SEPARATOR.join(self.parts))

    def to_fragment(self) -> Optional[Fragment]:
        if self.parts:
            return Fragment(content=PARAGRAPH_SEPARATOR.join(self.parts), subtitle=self.subtitle)
        if self.subtitle:
            # A heading with nothing under it still gets indexed
            return Fragment(content=self.subtitle, subtitle=self.subtitle)
        return None


def normalize_text(text: str, transliterate: bool = False) -> str:
    """Collapse whitespace (line breaks included) and optionally fold to ASCII."""
    text = _WHITESPACE.sub(' ', text).strip()
    if transliterate:
        text = unicodedata.normalize('NFKD', text).encode('ascii', 'ignore').decode('ascii')
        text = _WHITESPACE.sub(' ', text).strip()
    return text


class HtmlSplitter:
    """
    Splits HTML content into fragments.

    Args:
        content_limit: maximum characters of ``content`` per fragment
        heading_level: heading tag (``h1``..``h6``) that starts a new fragment
        transliterate: fold text to ASCII for indexes that need it
    """

    def __init__(self, content_limit: int = DEFAULT_CONTENT_LIMIT,
                 heading_level: str = DEFAULT_HEADING_LEVEL,
                 transliterate: bool = False):
        if content_limit <= 0:
            raise ValueError("content_limit must be positive")
        heading_level = heading_level.lower()
        if heading_level not in HEADING_TAGS:
            raise ValueError(f"heading_level must be one of {', '.join(HEADING_TAGS)}")
        self.content_limit = content_limit
        self.heading_level = heading_level
        self.transliterate = transliterate

    def split(self, html: Optional[str]) -> List[Fragment]:
        """
        Split HTML into ordered fragments.

        Returns an empty list when the content holds no text.
        """
        if not html or not html.strip():
            return []

        units = self.extract_units(html)
        fragments: List[Fragment] = []
        current = _Buffer()

        def close(buffer: _Buffer) -> None:
            fragment = buffer.to_fragment()
            if fragment:
                fragments.append(fragment)

        for unit in units:
            if unit.tag == self.heading_level:
                close(current)
                current = _Buffer(subtitle=unit.text)
                continue

            if current.parts and current.length_with(unit.text) > self.content_limit:
                close(current)
                current = _Buffer()

            current.parts.append(unit.text)

            if current.length > self.content_limit:
                # Only reachable with a single unit over the budget
                close(current)
                current = _Buffer()

        close(current)
        return fragments

    def extract_units(self, html: str) -> List[ContentUnit]:
        """Parse HTML into a flat, ordered list of block-level units."""
        try:
            soup = BeautifulSoup(html, 'html.parser')
            for tag in soup.find_all(DISCARDED_TAGS):
                tag.decompose()
            for br in soup.find_all('br'):
                br.replace_with('\n')
            units: List[ContentUnit] = []
            self._collect_units(soup, units)
            return units
        except Exception as e:
            logger.warning(f"Could not parse content as HTML, falling back to plain text: {e}")
            return self._plain_text_units(html)

    def _plain_text_units(self, html: str) -> List[ContentUnit]:
        text = re.sub(r'<(script|style)\b.*?</\1\s*>', ' ', html, flags=re.IGNORECASE | re.DOTALL)
        text = _TAG.sub(' ', text)
        return self._paragraph_units(text)

    def _paragraph_units(self, text: str) -> List[ContentUnit]:
        units = []
        for paragraph in _BLANK_LINE.split(text):
            paragraph = normalize_text(paragraph, self.transliterate)
            if paragraph:
                units.append(ContentUnit('p', paragraph))
        return units

    def _collect_units(self, parent: Tag, units: List[ContentUnit]) -> None:
        inline_run: List[str] = []

        def flush_inline() -> None:
            if inline_run:
                units.extend(self._paragraph_units(''.join(inline_run)))
                inline_run.clear()

        for node in parent.children:
            if isinstance(node, (Comment, Doctype, ProcessingInstruction, Declaration)):
                continue
            if isinstance(node, NavigableString):
                inline_run.append(str(node))
                continue
            if not isinstance(node, Tag):
                continue

            name = (node.name or '').lower()
            if name not in BLOCK_TAGS:
                inline_run.append(node.get_text())
                continue

            flush_inline()
            if name in CONTAINER_TAGS and self._has_block_children(node):
                self._collect_units(node, units)
                continue

            text = self._block_text(node, name)
            if text:
                units.append(ContentUnit(name, text))

        flush_inline()

    @staticmethod
    def _has_block_children(node: Tag) -> bool:
        return any(isinstance(child, Tag) and (child.name or '').lower() in BLOCK_TAGS for child in node.children)

    def _list_items(self, node: Tag) -> List[str]:
        """One text per item; nested list items follow their parent as items of their own."""
        items = []
        for li in node.find_all('li', recursive=False):
            parts, inline, nested = [], [], []
            for child in li.children:
                if isinstance(child, (Comment, Doctype, ProcessingInstruction, Declaration)):
                    continue
                name = (child.name or '').lower() if isinstance(child, Tag) else ''
                if name in LIST_TAGS:
                    nested.extend(self._list_items(child))
                elif name in BLOCK_TAGS:
                    parts.append(''.join(inline))
                    inline = []
                    parts.append(child.get_text() if name in INLINE_TEXT_TAGS else child.get_text(' '))
                else:
                    inline.append(child.get_text() if isinstance(child, Tag) else str(child))
            parts.append(''.join(inline))
            text = normalize_text(' '.join(parts), self.transliterate)
            if text:
                items.append(text)
            items.extend(nested)
        return items

    def _block_text(self, node: Tag, name: str) -> str:
        if name in LIST_TAGS:
            items = self._list_items(node)
            if not items:
                return normalize_text(node.get_text(' '), self.transliterate)
            return ' - ' + '\n - '.join(items)
        if name in INLINE_TEXT_TAGS:
            return normalize_text(node.get_text(), self.transliterate)
        # tables, definition lists and quotes keep their cells apart
        return normalize_text(node.get_text(' '), self.transliterate)


def split_content(html: Optional[str], content_limit: int = DEFAULT_CONTENT_LIMIT,
                  heading_level: str = DEFAULT_HEADING_LEVEL, transliterate: bool = False) -> List[Fragment]:
    """Convenience wrapper around ``HtmlSplitter.split``."""
    return HtmlSplitter(content_limit, heading_level, transliterate).split(html)
