"""Widget-side thread orchestration and page attribute parsing."""

from utterances.widget.page_attributes import PageAttributes, PageAttributesError, read_page_attributes
from utterances.widget.thread import (
    CommentThread,
    ConfidentialIssueError,
    OriginNotPermittedError,
    Timeline,
)

__all__ = [
    "CommentThread",
    "ConfidentialIssueError",
    "OriginNotPermittedError",
    "PageAttributes",
    "PageAttributesError",
    "Timeline",
    "read_page_attributes",
]
