# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""
Best-effort textual extraction of Terraform blocks and their tag attributes.

This module does not parse HCL. It locates top-level declaration blocks
(resource, module, provider, ...) by their header, bounds each block by
tracking brace depth, and reads tag/label attributes out of the block body.

All structural scanning runs on a masked copy of the text in which string
literal contents, comments and heredoc bodies are blanked out. The masked copy
has the same length as the original, so any index found in it can be used to
slice the original text. Braces inside strings or comments therefore never
affect block boundaries.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterator

from ..models.enums import TagDialect

logger = logging.getLogger(__name__)

TOP_LEVEL_KINDS = (
    "resource",
    "data",
    "module",
    "provider",
    "variable",
    "output",
    "locals",
    "terraform",
    "moved",
    "import",
    "check",
)

_BLOCK_HEADER_RE = re.compile(
    r"(?m)^[ \t]*(" + "|".join(TOP_LEVEL_KINDS) + r")"
    r"((?:[ \t]+(?:\"[^\"\n]*\"|[A-Za-z_][\w-]*))*)[ \t]*\{"
)
_LABEL_RE = re.compile(r"\"([^\"\n]*)\"|([A-Za-z_][\w-]*)")
_HEREDOC_RE = re.compile(r"<<-?[ \t]*\"?([A-Za-z_][\w-]*)\"?[ \t]*\r?\n")

# Runs on masked text: quoted keys and values appear as runs of blanks between quotes
_ENTRY_RE = re.compile(
    r"(?:(\"[^\"\n]*\")|([A-Za-z0-9_][\w.\-/:]*))[ \t]*[=:][ \t]*"
    r"(?:(\"[^\"\n]*\")|([^\s,{}\[\]\"][^\s,}\]]*))"
)


@dataclass(frozen=True)
class ScannedText:
    """Original text plus two same-length views used for scanning.

    code: comments and heredoc bodies blanked, strings intact.
    masked: comments, heredoc bodies and string contents blanked.
    """

    text: str
    code: str
    masked: str


@dataclass(frozen=True)
class Span:
    """Inner content of a {...} or [...] value, as indices into a ScannedText."""

    source: ScannedText
    start: int
    end: int

    @property
    def code(self) -> str:
        return self.source.code[self.start:self.end]

    @property
    def masked(self) -> str:
        return self.source.masked[self.start:self.end]


@dataclass(frozen=True)
class Block:
    """A top-level declaration block located in a file."""

    kind: str
    labels: tuple[str, ...]
    source: ScannedText
    start: int
    body_start: int
    body_end: int

    @property
    def end(self) -> int:
        return self.body_end + 1

    @property
    def text(self) -> str:
        """Full text of the block, header and closing brace included."""
        return self.source.text[self.start:self.end]

    @property
    def body(self) -> Span:
        return Span(self.source, self.body_start, self.body_end)


def _blank(chars: list[str], start: int, end: int) -> None:
    for i in range(start, end):
        if chars[i] != "\n":
            chars[i] = " "


def _skip_string(text: str, start: int, masked: list[str]) -> int:
    """Blank a string literal's contents; return the index after it.

    Handles escapes and ${...} / %{...} template sequences, which may
    themselves contain quoted strings. An unterminated string ends at the
    newline.
    """
    n = len(text)
    i = start + 1
    while i < n:
        c = text[i]
        if c == "\\":
            _blank(masked, i, min(i + 2, n))
            i += 2
        elif text.startswith("$${", i) or text.startswith("%%{", i):
            _blank(masked, i, i + 3)
            i += 3
        elif text.startswith("${", i) or text.startswith("%{", i):
            begin = i
            i += 2
            depth = 1
            while i < n and depth > 0:
                ch = text[i]
                if ch == '"':
                    i = _skip_string(text, i, masked)
                    continue
                if ch == "{":
                    depth += 1
                elif ch == "}":
                    depth -= 1
                i += 1
            _blank(masked, begin, i)
        elif c == '"':
            return i + 1
        elif c == "\n":
            return i
        else:
            masked[i] = " "
            i += 1
    return n


def scan(text: str) -> ScannedText:
    """Build the comment-free and fully masked views of a file."""
    code = list(text)
    masked = list(text)
    n = len(text)
    i = 0
    while i < n:
        c = text[i]
        if c == '"':
            i = _skip_string(text, i, masked)
        elif c == "#" or text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(code, i, end)
            _blank(masked, i, end)
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            _blank(code, i, end)
            _blank(masked, i, end)
            i = end
        elif text.startswith("<<", i):
            match = _HEREDOC_RE.match(text, i)
            if not match:
                i += 2
                continue
            marker = re.compile(r"(?m)^[ \t]*" + re.escape(match.group(1)) + r"[ \t]*$")
            closing = marker.search(text, match.end())
            end = closing.end() if closing else n
            _blank(code, match.end(), end)
            _blank(masked, match.end(), end)
            i = end
        else:
            i += 1
    return ScannedText(text=text, code="".join(code), masked="".join(masked))


def find_matching(masked: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at open_index, or -1."""
    opener = masked[open_index]
    closer = {"{": "}", "[": "]", "(": ")"}[opener]
    depth = 0
    for i in range(open_index, len(masked)):
        c = masked[i]
        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return i
    return -1


def _depth_map(masked: str) -> list[int]:
    """Nesting depth before each character."""
    depths = []
    depth = 0
    for c in masked:
        depths.append(depth)
        if c in "{[(":
            depth += 1
        elif c in "}])":
            depth -= 1
    return depths


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return value


def iter_blocks(text: str | ScannedText, kinds: tuple[str, ...] | None = None) -> Iterator[Block]:
    """
    Yield top-level blocks in declaration order.

    A block whose closing brace cannot be found is logged and skipped;
    scanning continues with the next header.

    Args:
        text: File content, raw or already scanned
        kinds: Only yield blocks of these kinds (e.g., ("resource",))
    """
    source = text if isinstance(text, ScannedText) else scan(text)
    position = 0
    for match in _BLOCK_HEADER_RE.finditer(source.masked):
        if match.start() < position:
            continue  # nested inside the previous block
        open_index = match.end() - 1
        close_index = find_matching(source.masked, open_index)
        header = source.text[match.start(2):match.end(2)]
        labels = tuple(q if q or not b else b for q, b in _LABEL_RE.findall(header))
        if close_index == -1:
            logger.warning(
                f"Unterminated {match.group(1)} block {' '.join(labels)}, skipping it"
            )
            continue
        position = close_index + 1
        kind = match.group(1)
        if kinds and kind not in kinds:
            continue
        yield Block(
            kind=kind,
            labels=labels,
            source=source,
            start=match.start(),
            body_start=open_index + 1,
            body_end=close_index,
        )


def find_block(text: str | ScannedText, kind: str, *labels: str) -> Block | None:
    """Find the first top-level block with the given kind and labels."""
    for block in iter_blocks(text, (kind,)):
        if block.labels[: len(labels)] == labels:
            return block
    return None


def _find_top_level(span: Span, pattern: re.Pattern) -> re.Match | None:
    masked = span.masked
    depths = None
    for match in pattern.finditer(masked):
        if depths is None:
            depths = _depth_map(masked)
        if depths[match.start()] == 0:
            return match
    return None


def _value_start(span: Span, offset: int) -> int:
    masked = span.masked
    while offset < len(masked) and masked[offset] in " \t\r\n":
        offset += 1
    return offset


def find_attribute_value(span: Span, name: str) -> Span | None:
    """
    Locate `name = {...}` or `name = [...]` at the top level of a body.

    Returns the inner content of the braces or brackets. For
    `name = merge(...)` the whole argument list is returned so that its
    object literals can be read. Any other expression yields None.
    """
    pattern = re.compile(r"(?<![\w-])" + re.escape(name) + r"[ \t]*=(?!=)")
    match = _find_top_level(span, pattern)
    if match is None:
        return None
    masked = span.masked
    start = _value_start(span, match.end())
    if start >= len(masked):
        return None
    opener = masked[start]
    if opener not in "{[":
        call = re.compile(r"merge[ \t]*\(").match(masked, start)
        if not call:
            logger.debug(f"Attribute {name} is set from an expression, cannot read it")
            return None
        start = call.end() - 1
    close = find_matching(masked, start)
    if close == -1:
        logger.debug(f"Attribute {name} has no closing bracket")
        return None
    return Span(span.source, span.start + start + 1, span.start + close)


def find_nested_block(span: Span, name: str) -> Span | None:
    """Locate a `name { ... }` sub-block at the top level of a body."""
    pattern = re.compile(r"(?<![\w-])" + re.escape(name) + r"[ \t]*\{")
    match = _find_top_level(span, pattern)
    if match is None:
        return None
    open_index = match.end() - 1
    close = find_matching(span.masked, open_index)
    if close == -1:
        return None
    return Span(span.source, span.start + open_index + 1, span.start + close)


def find_string_attribute(span: Span, name: str) -> str | None:
    """Read a top-level `name = "value"` (or bare expression) attribute."""
    pattern = re.compile(r"(?<![\w-])" + re.escape(name) + r"[ \t]*=(?!=)[ \t]*(\"[^\"\n]*\"|[^\s#]+)")
    match = _find_top_level(span, pattern)
    if match is None:
        return None
    start, end = match.span(1)
    return _unquote(span.code[start:end])


def _object_spans(span: Span) -> list[Span]:
    """Inner spans of every {...} found at depth 0 of a span."""
    masked = span.masked
    objects = []
    i = 0
    while i < len(masked):
        if masked[i] == "{":
            close = find_matching(masked, i)
            if close == -1:
                break
            objects.append(Span(span.source, span.start + i + 1, span.start + close))
            i = close + 1
        elif masked[i] in "[(":
            close = find_matching(masked, i)
            i = len(masked) if close == -1 else close + 1
        else:
            i += 1
    return objects


def _starts_entry(masked: str, index: int) -> bool:
    """True when only blanks separate index from the map start, a newline or a comma."""
    i = index - 1
    while i >= 0 and masked[i] in " \t\r":
        i -= 1
    return i < 0 or masked[i] in "\n,"


def parse_map_entries(span: Span) -> dict[str, str]:
    """
    Parse `key = value` pairs at the top level of a map literal.

    Keys are identifier-like tokens, optionally quoted. Quoted values keep
    their full text; bare values (var.owner, true) are kept verbatim.
    """
    masked = span.masked
    code = span.code
    depths = _depth_map(masked)
    entries: dict[str, str] = {}
    for match in _ENTRY_RE.finditer(masked):
        if depths[match.start()] != 0 or not _starts_entry(masked, match.start()):
            continue
        key_group = 1 if match.group(1) is not None else 2
        value_group = 3 if match.group(3) is not None else 4
        key = _unquote(code[match.start(key_group):match.end(key_group)])
        value = _unquote(code[match.start(value_group):match.end(value_group)])
        entries[key] = value
    return entries


def parse_tag_content(span: Span, dialect: TagDialect = TagDialect.MAP) -> dict[str, str]:
    """Parse the inner content of a tag attribute according to its dialect."""
    tags: dict[str, str] = {}
    if dialect == TagDialect.LIST_OF_PAIRS:
        for item in _object_spans(span):
            pair = {k.lower(): v for k, v in parse_map_entries(item).items()}
            if "key" in pair and "value" in pair:
                tags[pair["key"]] = pair["value"]
        return tags

    objects = _object_spans(span) if span.source.masked[span.start - 1] == "(" else [span]
    for item in objects:
        tags.update(parse_map_entries(item))
    return tags


def extract_tags(
    block: Block, attribute: str = "tags", dialect: TagDialect = TagDialect.MAP
) -> dict[str, str]:
    """
    Extract the tag mapping of a block.

    A block without the attribute yields an empty mapping.
    """
    value = find_attribute_value(block.body, attribute)
    if value is None:
        logger.debug(f"No {attribute} attribute found in {block.kind} {' '.join(block.labels)}")
        return {}
    if dialect == TagDialect.LIST_OF_PAIRS and value.source.masked[value.start - 1] != "[":
        logger.debug(f"Expected a list of key/value pairs for {attribute} in {' '.join(block.labels)}")
        return {}
    tags = parse_tag_content(value, dialect)
    for key, tag_value in tags.items():
        logger.debug(f"Found {attribute} key {key} with value {tag_value} in {' '.join(block.labels)}")
    return tags


def extract_provider_defaults(block: Block) -> dict[str, str]:
    """
    Extract default tags/labels from a provider block.

    Recognised shapes, merged first-writer-wins in this order:
    `default_tags { tags = {...} }`, `default_tags = {...}`,
    `default_labels { labels = {...} }`, `default_labels = {...}`.
    """
    defaults: dict[str, str] = {}
    for container, attribute in (("default_tags", "tags"), ("default_labels", "labels")):
        nested = find_nested_block(block.body, container)
        candidates = []
        if nested is not None:
            candidates.append(find_attribute_value(nested, attribute))
        candidates.append(find_attribute_value(block.body, container))
        for value in candidates:
            if value is None:
                continue
            for key, tag_value in parse_tag_content(value).items():
                defaults.setdefault(key, tag_value)
    return defaults
