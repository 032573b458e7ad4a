import re

from ..core.model import BlockNode, FileMetadata, HeadingNode, ListItemNode, Loc, Span

HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*$")
BLOCK_ID_RE = re.compile(r"[ \t]\^([A-Za-z0-9-]+)[ \t]*$")
LIST_ITEM_RE = re.compile(r"^([ \t]*)(?:\d+[.)]|[*+-])[ \t]+")
FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")


class MarkdownMetadata:
    """
    Structural metadata of a markdown document: headings, block ids and
    list items, with line/column/offset positions.

    Each line is considered on its own. Block ids cover the paragraph they
    close; list items cover their own line, with nesting taken from
    indentation. Lines that end before body_start (the frontmatter) are skipped
    but still count towards positions.
    """

    def parse(self, text: str, body_start: int = 0) -> FileMetadata:
        meta = FileMetadata()
        lines = text.split("\n")
        offset = 0
        fence: str | None = None
        paragraph_start: Loc | None = None
        list_stack: list[ListItemNode] = []

        for i, ln in enumerate(lines):
            if offset < body_start and offset + len(ln) <= body_start:
                offset += len(ln) + 1
                continue

            start = Loc(i, 0, offset)
            end = Loc(i, len(ln), offset + len(ln))

            # Check for fence start/end
            fence_match = FENCE_RE.match(ln)
            if fence is not None:
                if fence_match and fence_match.group(1)[0] == fence[0] and len(fence_match.group(1)) >= len(fence):
                    fence = None
                offset += len(ln) + 1
                continue
            if fence_match:
                fence = fence_match.group(1)
                paragraph_start = None
                list_stack = []
                offset += len(ln) + 1
                continue

            heading_match = HEADING_RE.match(ln)
            if heading_match:
                meta.headings.append(
                    HeadingNode(
                        heading=heading_match.group(2),
                        level=len(heading_match.group(1)),
                        position=Span(start, end),
                    )
                )

            if not ln.strip() or heading_match:
                paragraph_start = None
            elif paragraph_start is None:
                paragraph_start = start

            block_match = BLOCK_ID_RE.search(ln)
            if block_match:
                block_start = paragraph_start or start
                meta.blocks[block_match.group(1)] = BlockNode(
                    id=block_match.group(1), position=Span(block_start, end)
                )
                paragraph_start = None

            list_match = LIST_ITEM_RE.match(ln)
            if list_match:
                indent = len(list_match.group(1))
                li = ListItemNode(
                    parent=min(-i, -1),
                    position=Span(Loc(i, indent, offset + indent), end),
                )
                while list_stack and list_stack[-1].position.start.col > indent:
                    list_stack.pop()
                if list_stack:
                    if list_stack[-1].position.start.col == indent:
                        li = ListItemNode(parent=list_stack[-1].parent, position=li.position)
                        list_stack.pop()
                    else:
                        li = ListItemNode(
                            parent=list_stack[-1].position.start.line, position=li.position
                        )
                list_stack.append(li)
                meta.list_items.append(li)
                # each item is its own paragraph
                paragraph_start = None
            else:
                list_stack = []

            offset += len(ln) + 1

        return meta
