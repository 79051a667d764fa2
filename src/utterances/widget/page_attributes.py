"""Widget page attributes parsed from the embedding URL's query parameters."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel

# issue-term values that name another parameter holding the actual term
TERM_SOURCES = ("title", "url", "pathname", "og:title")

DEFAULT_THEME = "github-light"


class PageAttributesError(ValueError):
    """Raised when the widget's query parameters are incomplete or invalid."""

    pass


class PageAttributes(BaseModel):
    """Validated widget parameters."""

    project_id: int
    issue_term: str | None = None
    issue_number: int | None = None
    origin: str
    url: str | None = None
    title: str | None = None
    description: str | None = None
    label: str | None = None
    theme: str = DEFAULT_THEME
    session: str | None = None


def read_page_attributes(params: Mapping[str, str]) -> PageAttributes:
    """Validate the widget's query parameters.

    Either `issue-term` or `issue-number` selects the issue. An issue-term of
    title, url, pathname or og:title means "use the value of that parameter".

    Args:
        params: Query parameters of the widget URL.

    Returns:
        The parsed attributes.

    Raises:
        PageAttributesError: On missing or invalid parameters.
    """
    issue_term: str | None = None
    issue_number: int | None = None

    if "issue-term" in params:
        issue_term = params["issue-term"]
        if issue_term == "":
            raise PageAttributesError("When issue-term is specified, it cannot be blank.")
        if issue_term in TERM_SOURCES:
            if not params.get(issue_term):
                raise PageAttributesError(f'Unable to find "{issue_term}" metadata.')
            issue_term = params[issue_term]
    elif "issue-number" in params:
        raw_number = params["issue-number"]
        try:
            issue_number = int(raw_number)
        except ValueError:
            issue_number = None
        if issue_number is None or str(issue_number) != raw_number:
            raise PageAttributesError(f'issue-number is invalid. "{raw_number}"')
    else:
        raise PageAttributesError('"issue-term" or "issue-number" must be specified.')

    if "projectid" not in params:
        raise PageAttributesError('"projectid" is required.')
    if "origin" not in params:
        raise PageAttributesError('"origin" is required.')

    try:
        project_id = int(params["projectid"])
    except ValueError as e:
        raise PageAttributesError(f'Invalid projectid: "{params["projectid"]}"') from e

    return PageAttributes(
        project_id=project_id,
        issue_term=issue_term,
        issue_number=issue_number,
        origin=params["origin"],
        url=params.get("url"),
        title=params.get("title"),
        description=params.get("description"),
        label=params.get("label"),
        theme=params.get("theme") or DEFAULT_THEME,
        session=params.get("session"),
    )
