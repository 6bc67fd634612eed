"""Streaming HTML rewriter.

Rewrites a document while it streams: chunks are fed to an ``HTMLParser``
subclass that reports every token together with its exact source text, and
an ordered list of rules (selector + mutation) is applied to each start tag
as it goes by. Only start tags whose attributes changed are re-serialized;
everything else (text, comments, doctype, entities, unknown tags and the
original spelling of untouched tags) is written back byte for byte.

Working memory is the current chunk plus the stack of open elements. Rules
fire in registration order on a live :class:`Element` handle, so a later rule
sees what an earlier one did to the same element.

Selectors are deliberately small: ``tag``, ``#id``, ``.class``, ``[attr]``
and ``[attr=value]`` compounds (``input#amount``, ``link[href]``), joined by
the descendant combinator (``select#from option``).
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass
from html import escape
from html.parser import HTMLParser
from typing import (
    AsyncIterable,
    AsyncIterator,
    Callable,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "keygen",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# Scheme ("https:", "data:", "mailto:"), root-relative, fragment or query-only.
_ABSOLUTE_URL_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*:|/|#|\?)")

Attribute = Tuple[str, Optional[str]]


# ----------------------------------------------------------------------
# Selectors


_TAG_RE = re.compile(r"[a-zA-Z][\w-]*|\*")
_PART_RE = re.compile(
    r"""
    \#(?P<id>[\w-]+)
    | \.(?P<cls>[\w-]+)
    | \[\s*(?P<attr>[\w:.-]+)\s*
        (?:=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\]\s]+))\s*)?
      \]
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class CompoundSelector:
    tag: Optional[str] = None
    id: Optional[str] = None
    classes: Tuple[str, ...] = ()
    attributes: Tuple[Attribute, ...] = ()

    @classmethod
    def parse(cls, text: str) -> "CompoundSelector":
        pos = 0
        tag = None
        m = _TAG_RE.match(text)
        if m:
            tag = None if m.group() == "*" else m.group().lower()
            pos = m.end()
        id_ = None
        classes: List[str] = []
        attributes: List[Attribute] = []
        while pos < len(text):
            m = _PART_RE.match(text, pos)
            if not m:
                raise ValueError(f"Unsupported selector: {text!r}")
            if m.group("id"):
                id_ = m.group("id")
            elif m.group("cls"):
                classes.append(m.group("cls"))
            else:
                value = next(
                    (v for v in (m.group("dq"), m.group("sq"), m.group("bare")) if v is not None),
                    None,
                )
                attributes.append((m.group("attr").lower(), value))
            pos = m.end()
        if pos == 0:
            raise ValueError(f"Empty selector: {text!r}")
        return cls(tag=tag, id=id_, classes=tuple(classes), attributes=tuple(attributes))

    def matches(self, element: "Element") -> bool:
        if self.tag is not None and element.tag != self.tag:
            return False
        if self.id is not None and element.get_attribute("id") != self.id:
            return False
        if self.classes:
            present = (element.get_attribute("class") or "").split()
            if any(c not in present for c in self.classes):
                return False
        for name, value in self.attributes:
            if not element.has_attribute(name):
                return False
            if value is not None and element.get_attribute(name) != value:
                return False
        return True


class Selector:
    """Compound selectors joined by descendant combinators."""

    def __init__(self, text: str):
        self.text = text
        parts = text.split()
        if not parts:
            raise ValueError("Empty selector")
        self.parts = tuple(CompoundSelector.parse(p) for p in parts)

    def __repr__(self) -> str:
        return f"Selector({self.text!r})"

    def matches(self, element: "Element", ancestors: Sequence["Element"]) -> bool:
        if not self.parts[-1].matches(element):
            return False
        idx = len(ancestors) - 1
        for part in reversed(self.parts[:-1]):
            while idx >= 0 and not part.matches(ancestors[idx]):
                idx -= 1
            if idx < 0:
                return False
            idx -= 1
        return True


# ----------------------------------------------------------------------
# Element handle


class Element:
    """Live handle on a start tag while rules run against it."""

    def __init__(
        self, tag: str, attrs: Sequence[Attribute], raw: str, self_closing: bool = False
    ):
        self.tag = tag
        self.self_closing = self_closing
        self._attrs: List[List[Optional[str]]] = [[k, v] for k, v in attrs]
        self._raw = raw
        self._attrs_changed = False
        self.removed = False
        self.inner_content: Optional[str] = None
        self.appended: List[str] = []

    @property
    def can_have_content(self) -> bool:
        return not self.self_closing and self.tag not in VOID_ELEMENTS

    @property
    def attributes(self) -> List[Attribute]:
        return [(k, v) for k, v in self._attrs]  # type: ignore[misc]

    def get_attribute(self, name: str) -> Optional[str]:
        name = name.lower()
        for k, v in self._attrs:
            if k == name:
                return v if v is not None else ""
        return None

    def has_attribute(self, name: str) -> bool:
        name = name.lower()
        return any(k == name for k, _ in self._attrs)

    def set_attribute(self, name: str, value: str) -> None:
        name = name.lower()
        found = False
        kept: List[List[Optional[str]]] = []
        for pair in self._attrs:
            if pair[0] == name:
                if found:
                    continue
                found = True
                if pair[1] == value:
                    kept.append(pair)
                    continue
                pair = [name, value]
                self._attrs_changed = True
            kept.append(pair)
        if not found:
            kept.append([name, value])
            self._attrs_changed = True
        if len(kept) != len(self._attrs):
            self._attrs_changed = True
        self._attrs = kept

    def remove_attribute(self, name: str) -> None:
        name = name.lower()
        kept = [pair for pair in self._attrs if pair[0] != name]
        if len(kept) != len(self._attrs):
            self._attrs = kept
            self._attrs_changed = True

    def set_inner_content(self, content: str, html: bool = False) -> None:
        if not self.can_have_content:
            return
        self.inner_content = content if html else escape(content, quote=False)

    def append(self, content: str, html: bool = True) -> None:
        if not self.can_have_content:
            return
        self.appended.append(content if html else escape(content, quote=False))

    def remove(self) -> None:
        self.removed = True

    def start_tag(self) -> str:
        if not self._attrs_changed:
            return self._raw
        parts = [self.tag]
        for name, value in self._attrs:
            if value is None:
                parts.append(name)  # type: ignore[arg-type]
            else:
                parts.append(f'{name}="{escape(value, quote=True)}"')
        return "<" + " ".join(parts) + (" />" if self.self_closing else ">")  # type: ignore[arg-type]


# ----------------------------------------------------------------------
# Rules


@dataclass(frozen=True)
class Rule:
    selector: str

    def apply(self, element: Element) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class SetText(Rule):
    text: str

    def apply(self, element: Element) -> None:
        element.set_inner_content(self.text)


@dataclass(frozen=True)
class SetInnerHtml(Rule):
    html: str

    def apply(self, element: Element) -> None:
        element.set_inner_content(self.html, html=True)


@dataclass(frozen=True)
class SetAttribute(Rule):
    name: str
    value: str

    def apply(self, element: Element) -> None:
        element.set_attribute(self.name, self.value)


@dataclass(frozen=True)
class RemoveAttribute(Rule):
    name: str

    def apply(self, element: Element) -> None:
        element.remove_attribute(self.name)


@dataclass(frozen=True)
class SelectOption(Rule):
    """Mark the option whose value matches; clear the mark on its siblings."""

    value: str
    attribute: str = "selected"

    def apply(self, element: Element) -> None:
        if element.get_attribute("value") == self.value:
            element.set_attribute(self.attribute, self.attribute)
        else:
            element.remove_attribute(self.attribute)


@dataclass(frozen=True)
class AbsolutizeUrl(Rule):
    """Turn a document-relative URL attribute into a root-relative one."""

    attribute: str

    def apply(self, element: Element) -> None:
        value = element.get_attribute(self.attribute)
        if not value or _ABSOLUTE_URL_RE.match(value):
            return
        while value.startswith("./"):
            value = value[2:]
        element.set_attribute(self.attribute, "/" + value)


@dataclass(frozen=True)
class AppendHtml(Rule):
    """Insert markup just before the element's end tag."""

    html: str

    def apply(self, element: Element) -> None:
        element.append(self.html)


@dataclass(frozen=True)
class RemoveElement(Rule):
    def apply(self, element: Element) -> None:
        element.remove()


# ----------------------------------------------------------------------
# Tokenizer


class _SourceTokenizer(HTMLParser):
    """HTMLParser that reports each token with its exact source slice.

    The base parser advances through ``rawdata`` via ``updatepos(i, j)`` right
    after dispatching the construct spanning ``[i, j)``; the handlers only
    record what kind of construct it was.
    """

    def __init__(self, on_token: Callable[[tuple], None]):
        super().__init__(convert_charrefs=False)
        self._on_token = on_token
        self._pending: List[tuple] = []

    def handle_starttag(self, tag, attrs):  # noqa: D401
        self._pending.append(("start", tag, attrs, False))

    def handle_startendtag(self, tag, attrs):  # noqa: D401
        self._pending.append(("start", tag, attrs, True))

    def handle_endtag(self, tag):  # noqa: D401
        self._pending.append(("end", tag))

    def updatepos(self, i, j):
        if i < j:
            raw = self.rawdata[i:j]
            structural = next((p for p in self._pending if p[0] in ("start", "end")), None)
            if structural is None:
                self._on_token(("text", raw))
            else:
                self._on_token(structural + (raw,))
        self._pending.clear()
        return super().updatepos(i, j)


class RewriteSession:
    """Single-use rewriting state for one document."""

    def __init__(self, rules: Sequence[Tuple[Selector, Rule]]):
        self._rules = rules
        self._stack: List[Element] = []
        # index in _stack of the element whose original content is being dropped
        self._suppress_at: Optional[int] = None
        self._out: List[str] = []
        self._parser = _SourceTokenizer(self._on_token)
        self._closed = False

    # Public API -----------------------------------------------
    def feed(self, text: str) -> str:
        if text:
            self._parser.feed(text)
        return self._drain()

    def close(self) -> str:
        if self._closed:
            return ""
        self._closed = True
        # the parser holds back raw text of an unterminated <script>/<style> forever
        if self._parser.cdata_elem is not None and self._parser.rawdata:
            tail = self._parser.rawdata
            self._parser.rawdata = ""
            self._on_token(("text", tail))
        self._parser.close()
        self._close_to(0, None)
        return self._drain()

    # Internal --------------------------------------------------
    def _drain(self) -> str:
        out = "".join(self._out)
        self._out.clear()
        return out

    @property
    def _suppressing(self) -> bool:
        return self._suppress_at is not None

    def _on_token(self, token: tuple) -> None:
        kind = token[0]
        if kind == "text":
            if not self._suppressing:
                self._out.append(token[1])
        elif kind == "start":
            _, tag, attrs, self_closing, raw = token
            self._start(Element(tag, attrs, raw, self_closing))
        else:
            _, tag, raw = token
            self._end(tag, raw)

    def _start(self, element: Element) -> None:
        if self._suppressing:
            if element.can_have_content:
                self._stack.append(element)
            return
        for selector, rule in self._rules:
            if selector.matches(element, self._stack):
                rule.apply(element)
        if element.removed:
            if element.can_have_content:
                self._stack.append(element)
                self._suppress_at = len(self._stack) - 1
            return
        self._out.append(element.start_tag())
        if element.can_have_content:
            self._stack.append(element)
            if element.inner_content is not None:
                self._out.append(element.inner_content)
                self._suppress_at = len(self._stack) - 1

    def _end(self, tag: str, raw: str) -> None:
        for index in range(len(self._stack) - 1, -1, -1):
            if self._stack[index].tag == tag:
                self._close_to(index, raw)
                return
        # stray end tag
        if not self._suppressing:
            self._out.append(raw)

    def _close_to(self, index: int, raw: Optional[str]) -> None:
        """Pop open elements down to ``index``; ``raw`` closes the last one popped."""
        while len(self._stack) > index:
            element = self._stack.pop()
            depth = len(self._stack)
            is_target = depth == index
            if self._suppress_at is not None:
                if depth > self._suppress_at:
                    continue
                self._suppress_at = None
            if element.removed:
                continue
            self._out.extend(element.appended)
            if is_target and raw is not None:
                self._out.append(raw)


Chunk = Union[bytes, str]


class HtmlRewriter:
    """Compiled, reusable set of rewrite rules."""

    def __init__(self, rules: Sequence[Rule]):
        self.rules = list(rules)
        self._compiled = [(Selector(rule.selector), rule) for rule in self.rules]

    def session(self) -> RewriteSession:
        return RewriteSession(self._compiled)

    def rewrite_text(self, html: str) -> str:
        session = self.session()
        return session.feed(html) + session.close()

    async def transform(self, chunks: AsyncIterable[Chunk]) -> AsyncIterator[bytes]:
        """Yield the rewritten document as UTF-8 while ``chunks`` streams in.

        Undecodable bytes round-trip unchanged. Closing this generator early
        closes ``chunks`` too.
        """
        session = self.session()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="surrogateescape")
        try:
            async for chunk in chunks:
                text = decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
                out = session.feed(text)
                if out:
                    yield out.encode("utf-8", "surrogateescape")
            out = session.feed(decoder.decode(b"", final=True)) + session.close()
            if out:
                yield out.encode("utf-8", "surrogateescape")
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()
