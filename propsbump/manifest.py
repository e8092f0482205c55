"""MSBuild XML documents that keep their exact formatting when saved.

Elements are located with expat so comments, CDATA and processing instructions are
never mistaken for markup. Edits are recorded against byte offsets of attribute values
in the original content and applied on serialization, so every byte outside a changed
value is written back untouched.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from xml.parsers import expat
from xml.sax.saxutils import escape

from .detect import detect_newline, has_trailing_newline

logger = logging.getLogger(__name__)

_ATTRIBUTE_PATTERN = re.compile(rb"""([^\s=/>"']+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
_UTF16_BOMS = (b"\xff\xfe", b"\xfe\xff")


class ManifestError(Exception):
    """Raised when a manifest or project file cannot be parsed."""


@dataclass
class AttributeSpan:
    """Location of an attribute value inside the raw content."""

    name: str
    value: str
    start: int
    end: int
    quote: str = '"'
    inserted: bool = False


class ManifestElement:
    """A start tag found in a document, with the spans of its attributes."""

    def __init__(
        self,
        document: "ManifestDocument",
        tag: str,
        start: int,
        end: int,
        attributes: dict[str, AttributeSpan],
    ):
        self.document = document
        self.tag = tag
        self.start = start
        self.end = end
        self.attributes = attributes

    def get(self, name: str, default: str | None = None) -> str | None:
        span = self.attributes.get(name)
        return span.value if span is not None else default

    def set(self, name: str, value: str) -> None:
        self.document.set_attribute(self, name, value)

    def __repr__(self) -> str:
        attrs = " ".join(f'{name}="{span.value}"' for name, span in self.attributes.items())
        return f"<{self.tag} {attrs}>"


class ManifestDocument:
    """An MSBuild file loaded for in-place attribute edits."""

    def __init__(self, content: bytes, path: Path | None = None):
        self.path = path
        self.content = content
        self.newline = detect_newline(content)
        self.trailing_newline = has_trailing_newline(content)
        self._edits: dict[tuple[int, str], tuple[int, bytes]] = {}
        self.elements = self._scan()

    @classmethod
    def load(cls, path: Path | str) -> "ManifestDocument":
        """Load a document from disk.

        Args:
            path: File to load

        Returns:
            Parsed document

        Raises:
            ManifestError: If the file is not well-formed XML
        """
        path = Path(path)
        return cls(path.read_bytes(), path)

    @property
    def changed(self) -> bool:
        return bool(self._edits)

    def find(self, tag: str) -> list[ManifestElement]:
        """Return elements with the given tag, in document order."""
        return [element for element in self.elements if element.tag == tag]

    def set_attribute(self, element: ManifestElement, name: str, value: str) -> None:
        """Set an attribute value, adding the attribute when it is missing."""
        span = element.attributes.get(name)
        if span is None:
            position = max(
                (existing.end + 1 for existing in element.attributes.values() if not existing.inserted),
                default=element.start + 1 + len(element.tag.encode("utf-8")),
            )
            span = AttributeSpan(name, value, position, position, inserted=True)
            element.attributes[name] = span
        elif span.value == value:
            return

        span.value = value
        quoted = self._escape(value, span.quote).encode("utf-8")
        if span.inserted:
            replacement = b" " + name.encode("utf-8") + b"=" + span.quote.encode() + quoted + span.quote.encode()
        else:
            replacement = quoted
        self._edits[(span.start, name)] = (span.end, replacement)

    def serialize(self) -> bytes:
        """Render the document with all pending edits applied."""
        output = self.content
        for (start, _name), (end, replacement) in sorted(self._edits.items(), reverse=True):
            output = output[:start] + replacement + output[end:]
        return self._apply_line_endings(output)

    def save(self, path: Path | str | None = None) -> bool:
        """Write the document if it has pending edits.

        Args:
            path: Destination, defaults to the path the document was loaded from

        Returns:
            True when the file was written
        """
        if not self.changed:
            return False

        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("No path to save document to")

        target.write_bytes(self.serialize())
        logger.debug("Saved %s", target)
        return True

    def _apply_line_endings(self, output: bytes) -> bytes:
        ends_with_newline = has_trailing_newline(output)
        if self.trailing_newline and not ends_with_newline:
            return output + self.newline.encode("ascii")
        if not self.trailing_newline and ends_with_newline:
            return output.rstrip(b"\r\n")
        return output

    @staticmethod
    def _escape(value: str, quote: str) -> str:
        if quote == "'":
            return escape(value, {"'": "&apos;"})
        return escape(value, {'"': "&quot;"})

    def _scan(self) -> list[ManifestElement]:
        if self.content.startswith(_UTF16_BOMS):
            raise ManifestError(f"UTF-16 encoded files are not supported: {self.path}")

        starts: list[tuple[str, int, dict[str, str]]] = []
        parser = expat.ParserCreate()

        def start_element(name: str, attrs: dict[str, str]) -> None:
            starts.append((name, parser.CurrentByteIndex, attrs))

        parser.StartElementHandler = start_element
        try:
            parser.Parse(self.content, True)
        except expat.ExpatError as e:
            raise ManifestError(f"Cannot parse {self.path or 'document'}: {e}") from e

        return [self._element(name, index, attrs) for name, index, attrs in starts]

    def _element(self, tag: str, index: int, attrs: dict[str, str]) -> ManifestElement:
        opening = b"<" + tag.encode("utf-8")
        start = index
        if self.content[start : start + len(opening)] != opening:
            start = self.content.find(opening, max(0, index - 4))
            if start < 0:
                raise ManifestError(f"Cannot locate <{tag}> in {self.path or 'document'}")

        end = self._tag_end(start)
        attributes: dict[str, AttributeSpan] = {}
        body_start = start + len(opening)
        for match in _ATTRIBUTE_PATTERN.finditer(self.content, body_start, end):
            name = match.group(1).decode("utf-8")
            if name not in attrs:
                continue
            group = 2 if match.group(2) is not None else 3
            attributes[name] = AttributeSpan(
                name=name,
                value=attrs[name],
                start=match.start(group),
                end=match.end(group),
                quote='"' if group == 2 else "'",
            )

        return ManifestElement(self, tag, start, end, attributes)

    def _tag_end(self, start: int) -> int:
        quote = None
        for position in range(start, len(self.content)):
            char = self.content[position : position + 1]
            if quote:
                if char == quote:
                    quote = None
            elif char in (b'"', b"'"):
                quote = char
            elif char == b">":
                return position
        raise ManifestError(f"Unterminated tag at offset {start} in {self.path or 'document'}")
