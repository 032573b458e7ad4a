"""
Markdown context reconstruction for extracted spans.

A span cut out of a document can start in the middle of a list item or an
emphasis run. The prefix/suffix computed here reopens the line-start markup
and the inline toggles that were active at each boundary, so the fragment
renders the same way on its own.
"""

import re
from dataclasses import dataclass

from .ranges import Range

LINESTART = "linestart"
SURROUNDING = "surrounding"
TEXT = "text"


@dataclass(frozen=True)
class TokenType:
    kind: str
    pattern: re.Pattern


@dataclass
class Token:
    type: TokenType
    text: str


BLOCKQUOTE = TokenType(LINESTART, re.compile(r">[ \t]?"))
HEADING = TokenType(LINESTART, re.compile(r"#{1,6}[ \t]"))
# Without the previous line an indented bullet cannot be told apart from an
# indented code block, so leading whitespace is only taken with a marker.
LIST_ITEM = TokenType(LINESTART, re.compile(r"[ \t]*(?:\d+[.)]|[+*-])[ \t]"))
CODE_LINE = TokenType(LINESTART, re.compile(r" {4}|\t"))
STRONG = TokenType(SURROUNDING, re.compile(r"\*\*|__"))
STRIKE = TokenType(SURROUNDING, re.compile(r"~~"))
MARK = TokenType(SURROUNDING, re.compile(r"=="))
EM = TokenType(SURROUNDING, re.compile(r"[*_]"))
CODE = TokenType(SURROUNDING, re.compile(r"`"))
PLAIN = TokenType(TEXT, re.compile(r".", re.DOTALL))

# Matching priority
TOKEN_TYPES = [BLOCKQUOTE, HEADING, LIST_ITEM, CODE_LINE, STRONG, STRIKE, MARK, EM, CODE, PLAIN]
INLINE_TYPES = [t for t in TOKEN_TYPES if t.kind != LINESTART]


def tokenize(line: str) -> list[Token]:
    """Split a single line into line-start, surrounding and text tokens."""
    tokens: list[Token] = []
    candidates = TOKEN_TYPES
    pos = 0
    while pos < len(line):
        for token_type in candidates:
            m = token_type.pattern.match(line, pos)
            if m:
                break
        pos = m.end()
        if token_type is PLAIN and tokens and tokens[-1].type is PLAIN:
            tokens[-1].text += m.group()
        else:
            tokens.append(Token(token_type, m.group()))
        if token_type.kind != LINESTART:
            candidates = INLINE_TYPES
    return tokens


def open_tokens(tokens: list[Token]) -> list[Token]:
    """Inline toggles still open at the end of tokens, in opening order."""
    stack: list[Token] = []
    for token in tokens:
        if token.type.kind != SURROUNDING:
            continue
        if stack and stack[-1].text == token.text:
            stack.pop()
        else:
            stack.append(token)
    return stack


def _line_before(text: str, offset: int) -> str:
    return text[text.rfind("\n", 0, offset) + 1 : offset]


def markdown_prefix(text: str, start: int) -> str:
    tokens = tokenize(_line_before(text, start))
    starts = [t for t in tokens if t.type.kind == LINESTART]
    return "".join(t.text for t in starts + open_tokens(tokens))


def markdown_suffix(text: str, end: int) -> str:
    tokens = tokenize(_line_before(text, end))
    return "".join(t.text for t in reversed(open_tokens(tokens)))


def extract_with_context(text: str, start: int, end: int) -> str:
    return markdown_prefix(text, start) + text[start:end] + markdown_suffix(text, end)


def extract_range_with_context(text: str, range_: Range) -> str:
    """Resolve range_ in text and return it with its markdown context repaired."""
    span = range_.resolve(text)
    return extract_with_context(text, span.start, span.end)


def _strip_common(parts: list[str], token_type: TokenType) -> list[str] | None:
    matches = [token_type.pattern.match(p) for p in parts]
    if not all(matches):
        return None
    return [p[m.end() :] for p, m in zip(parts, matches)]


def _normalize_once(text: str) -> str:
    parts = text.split("\n")

    # Drop indentation and blockquote markers shared by every line
    while parts[0]:
        while all(p[:1] in (" ", "\t") for p in parts):
            parts = [p[1:] for p in parts]
        stripped = _strip_common(parts, BLOCKQUOTE)
        if stripped is None:
            break
        parts = stripped

    # A lone line needs neither its bullet nor its heading marker
    if len(parts) == 1:
        for token_type in (LIST_ITEM, HEADING):
            parts = _strip_common(parts, token_type) or parts

    return "\n".join(parts)


def normalize_markdown(text: str) -> str:
    """
    Strip markup that only made sense in the fragment's original location.

    Blockquote and indentation markers are removed only when every line
    carries them. A single-line fragment also loses a leading list or
    heading marker; multi-line fragments keep theirs.
    """
    while True:
        normalized = _normalize_once(text)
        if normalized == text:
            return normalized
        text = normalized
