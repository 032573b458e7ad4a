"""Failure taxonomy for range resolution, subpath resolution and parsing."""

import json


class QuothError(Exception):
    """Base class for every failure raised by quoth."""

    @property
    def user_message(self) -> str:
        return str(self)


class ResolveError(QuothError, LookupError):
    """A reference no longer resolves against the current document."""

    @property
    def user_message(self) -> str:
        return f"{self}; could not locate quoted text, try re-copying"


class AnchorNotFound(ResolveError):
    def __init__(self, anchor: str):
        super().__init__(f"Could not find {_quote(anchor)} in file")
        self.anchor = anchor


class OutOfBounds(ResolveError):
    def __init__(self, position: object):
        super().__init__(f"Position {position} is outside of the file")
        self.position = position


class HeadingNotFound(ResolveError):
    def __init__(self, path: str):
        super().__init__(f"heading path not found: {path}")
        self.path = path


class BlockNotFound(ResolveError):
    def __init__(self, block_id: str):
        super().__init__(f"block not found: ^{block_id}")
        self.block_id = block_id


class ListItemNotFound(ResolveError):
    def __init__(self, path: str):
        super().__init__(f"list item path not found: {path}")
        self.path = path


class FileNotFound(ResolveError):
    def __init__(self, link: str):
        super().__init__(f"File not found: {link}")
        self.link = link


class QuothSyntaxError(QuothError, ValueError):
    """Malformed reference block; carries the offending token."""

    def __init__(self, message: str, token: str | None = None, setting: str | None = None):
        if setting:
            message = f"invalid {setting} line: {message}"
        super().__init__(message)
        self.token = token
        self.setting = setting

    @property
    def user_message(self) -> str:
        return f"Quoth block error: {self}"


class CaptureError(QuothError):
    """A reference could not be captured from the current selection."""


class UnreadableFile(QuothError):
    """A file exists but can not be read as text."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Can not read {path}: {reason}")
        self.path = path


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)
