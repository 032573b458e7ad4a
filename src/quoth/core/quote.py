"""Resolving a reference block back into quoted markdown."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from .embed import DEFAULT_DISPLAY, FENCE_TAG, Display, Embed, ShowOptions, parse
from .errors import CaptureError, FileNotFound, QuothError, QuothSyntaxError
from .markdown import extract_range_with_context, normalize_markdown
from .ports import Host, file_metadata
from .subpath import resolve_subpath

MARKDOWN_EXTENSIONS = {".md", ".markdown"}

# Fenced code language for quotes taken from non-markdown files
LANGUAGES = {
    ".py": "python",
    ".js": "javascript",
    ".ts": "typescript",
    ".rs": "rust",
    ".go": "go",
    ".rb": "ruby",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".sh": "bash",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".html": "html",
    ".css": "css",
    ".sql": "sql",
}


@dataclass
class Quote:
    path: str
    subpath: str
    markdown: str
    title: str
    author: str | None = None


def quote_text(doc: str, embed: Embed, host: Host, path: str) -> str:
    """The part of doc an embed addresses, before markdown repair."""
    if not embed.subpath:
        return doc
    scope = resolve_subpath(doc, file_metadata(host, path), embed.subpath).span(doc)
    return doc[scope.start : scope.end]


def assemble_quote(embed: Embed, ref_path: str, host: Host) -> Quote:
    if not embed.file:
        raise QuothSyntaxError("File must be set in block", token="", setting="path")
    path = host.resolve_link_target(embed.file, ref_path)
    if path is None:
        raise FileNotFound(embed.file)

    text = quote_text(host.read_file(path), embed, host, path)
    suffix = PurePosixPath(path).suffix.lower()
    is_markdown = suffix in MARKDOWN_EXTENSIONS

    if not embed.ranges:
        markdown = text
        if is_markdown and not embed.subpath:
            markdown = text[host.frontmatter_end(path) :]
    elif is_markdown:
        markdown = normalize_markdown(
            embed.join.join(extract_range_with_context(text, r) for r in embed.ranges)
        )
    else:
        parts = []
        for r in embed.ranges:
            span = r.resolve(text)
            parts.append(text[span.start : span.end])
        markdown = embed.join.join(parts)

    if not is_markdown:
        markdown = f"```{LANGUAGES.get(suffix, '')}\n{markdown.strip(chr(10))}\n```"

    author = host.get_frontmatter(path).get("author")
    return Quote(
        path=path,
        subpath=embed.subpath,
        markdown=markdown,
        title=PurePosixPath(path).stem,
        author=str(author) if author is not None else None,
    )


def render_quote(quote: Quote, display: Display = DEFAULT_DISPLAY, show: ShowOptions | None = None) -> str:
    """
    Markdown for a resolved quote.

    Embedded quotes become a blockquote headed by a link to their source;
    inline quotes are the bare markdown. The attribution line is added when
    show asks for it (the author only when the source declares one).
    """
    if "```" + FENCE_TAG in quote.markdown or "~~~" + FENCE_TAG in quote.markdown:
        raise CaptureError("Can not quote a quoth code block.")
    show = show or ShowOptions()

    body = quote.markdown
    attribution = []
    if show.author and quote.author:
        attribution.append(quote.author)
    if show.title:
        attribution.append(f"[[{quote.title}]]")
    if attribution:
        body += "\n\n— " + ", ".join(attribution)

    if display == "inline":
        return body
    header = f"[[{quote.title}{quote.subpath}]]"
    return "\n".join(">" + (" " + line if line else "") for line in [header, ""] + body.split("\n"))


@dataclass
class RenderResult:
    markdown: str | None = None
    error: QuothError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def text(self) -> str:
        if isinstance(self.error, QuothSyntaxError):
            return f"**{self.error.user_message}**"
        if self.error is not None:
            return f"**Quoth block error: {self.error.user_message}**"
        return self.markdown or ""


def render_block(source: str, ref_path: str, host: Host) -> RenderResult:
    """Parse, resolve and render a quoth block; failures become an inline error."""
    try:
        embed = parse(source)
        quote = assemble_quote(embed, ref_path, host)
        return RenderResult(markdown=render_quote(quote, embed.display, embed.show))
    except QuothError as e:
        return RenderResult(error=e)
