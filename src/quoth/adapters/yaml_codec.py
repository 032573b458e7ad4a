import io
import re
from typing import Any

import yaml

_FM = re.compile(r"^\s*---\s*\n(.*?)\n---\s*\n?", re.DOTALL)


class YamlFrontmatter:
    def decode(self, text: str) -> tuple[dict[str, Any], str]:
        """Split a document into its frontmatter mapping and body."""
        m = _FM.match(text)
        if not m:
            return {}, text
        try:
            fm = yaml.safe_load(io.StringIO(m.group(1))) or {}
        except yaml.YAMLError:
            # Not frontmatter after all, e.g. a thematic break
            return {}, text
        if not isinstance(fm, dict):
            return {}, text
        return fm, text[m.end() :]

    def body_offset(self, text: str) -> int:
        """Offset of the first character after the frontmatter, 0 if there is none."""
        _meta, body = self.decode(text)
        return len(text) - len(body)
