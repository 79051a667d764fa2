"""Reaction toggling on comments.

GitLab answers a POST of an award emoji with 201 when it creates the
reaction and with 200 when the user already has it. toggle_reaction() turns
that into a toggle: an existing reaction is deleted, so repeated calls
alternate between the created and deleted states.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from utterances.gitlab.client import IssueAPIClient
from utterances.gitlab.exceptions import UnexpectedResponseError
from utterances.gitlab.models import Reaction, ReactionKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReactionToggleResult:
    """Outcome of a toggle.

    Attributes:
        reaction: The reaction that was created or deleted.
        deleted: True if the reaction existed and was removed.
    """

    reaction: Reaction
    deleted: bool


async def toggle_reaction(
    client: IssueAPIClient, target_url: str, kind: ReactionKind | str
) -> ReactionToggleResult:
    """Create the user's reaction, or delete it if it already exists.

    Args:
        client: API client carrying the user's token.
        target_url: Award emoji collection URL of the comment, absolute or
            relative to the API base.
        kind: The reaction kind.

    Returns:
        ReactionToggleResult describing what happened.

    Raises:
        UnexpectedResponseError: If the create request answers neither 200 nor 201.
        TrackerRequestError: On network errors.
    """
    kind = ReactionKind(kind)
    path = client.relative_path(target_url).rstrip("/")

    response = await client.request("POST", path, json_body={"name": kind.value})
    if response.status_code not in (200, 201):
        raise UnexpectedResponseError(response.status_code)

    reaction = Reaction.model_validate(response.json())
    if response.status_code == 201:
        return ReactionToggleResult(reaction=reaction, deleted=False)

    # Already reacted: remove it
    logger.debug(f"Reaction {kind.value} exists on {path}, deleting {reaction.id}")
    await client.request("DELETE", f"{path}/{reaction.id}")
    return ReactionToggleResult(reaction=reaction, deleted=True)
