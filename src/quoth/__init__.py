"""quoth - robust, re-locatable references to spans of markdown text."""

__version__ = "0.3.0"
