"""Convert ``doc`` rich text to plain text for docstrings."""

import logging
import re
import xml.etree.ElementTree as ET

from wadlgen.parser.model import Doc

logger = logging.getLogger(__name__)

XHTML_NS = "http://www.w3.org/1999/xhtml"

_BLOCK = {"p", "div", "blockquote", "section", "dl", "dt", "dd", "table", "tr", "h1", "h2", "h3", "h4", "h5", "h6"}
_INLINE_CODE = {"code", "tt", "kbd", "samp"}
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def _local(tag: str) -> str:
    return tag.rpartition("}")[2]


class _TextWriter:
    def __init__(self, strip_code_examples: bool):
        self.strip_code_examples = strip_code_examples
        self.blocks: list[tuple[str, bool]] = []  # (text, is list item)
        self.current: list[str] = []
        self.item = False

    def text(self, text: str | None) -> None:
        if not text:
            return
        chunks = _PARAGRAPH_BREAK.split(text)
        for i, chunk in enumerate(chunks):
            if i:
                self.flush()
            self.current.append(chunk)

    def flush(self) -> None:
        text = " ".join("".join(self.current).split())
        if text:
            self.blocks.append((text, self.item))
        self.current = []

    def element(self, element: ET.Element) -> None:
        tag = _local(element.tag)
        if tag == "pre":
            self.flush()
            if not self.strip_code_examples:
                body = "".join(element.itertext()).strip("\n")
                if body.strip():
                    self.blocks.append(("\n".join("    " + line for line in body.splitlines()), False))
        elif tag in ("ul", "ol"):
            self.flush()
            for n, child in enumerate(element, 1):
                self.flush()
                self.item = True
                self.text(f"{n}. " if tag == "ol" else "* ")
                self.children(child)
                self.flush()
                self.item = False
                self.text(child.tail)
            self.flush()
        elif tag == "br":
            self.flush()
        elif tag in _BLOCK:
            self.flush()
            self.children(element)
            self.flush()
        elif tag == "a":
            label = "".join(element.itertext()).strip()
            href = element.get("href")
            self.text(label)
            if href and href != label:
                self.text(f" ({href})")
        elif tag in _INLINE_CODE:
            if self.strip_code_examples:
                return
            self.text("`" + "".join(element.itertext()) + "`")
        else:
            self.children(element)

    def children(self, element: ET.Element) -> None:
        self.text(element.text)
        for child in element:
            self.element(child)
            self.text(child.tail)

    def result(self) -> str:
        self.flush()
        out: list[str] = []
        previous_item = False
        for text, item in self.blocks:
            if out:
                out.append("\n" if item and previous_item else "\n\n")
            out.append(text)
            previous_item = item
        return "".join(out)


def doc_to_text(doc: Doc, strip_code_examples: bool = False) -> str:
    """Plain text for ``doc``; markup that cannot be parsed is passed through."""
    if doc.xmlns not in (None, XHTML_NS):
        logger.warning("Unknown documentation namespace %s, treating markup as text", doc.xmlns)
    writer = _TextWriter(strip_code_examples)
    try:
        root = ET.fromstring(f"<doc>{doc.content}</doc>")
    except ET.ParseError:
        logger.debug("Documentation is not well-formed XML, using it literally")
        writer.text(doc.content)
    else:
        writer.children(root)
    body = writer.result()
    if doc.title:
        return f"{doc.title}\n\n{body}" if body else doc.title
    return body


def docs_to_text(docs: list[Doc], strip_code_examples: bool = False) -> str:
    """Join several docs, preferring English or unlabelled ones when languages differ."""
    preferred = [d for d in docs if d.lang is None or d.lang.lower().startswith("en")] or docs
    texts = [doc_to_text(d, strip_code_examples) for d in preferred]
    return "\n\n".join(t for t in texts if t)
