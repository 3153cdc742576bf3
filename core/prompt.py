"""Prompt template for the oracle reading.

Wording is data: the template exposes ``$tracks`` and ``$artists``
substitution points and is rendered into chat messages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from string import Template
from typing import Dict, List, Sequence

SYSTEM_PERSONA = (
    "You are an oracle providing astrological and divination-type readings "
    "based on the user's Spotify top tracks and artists. "
    "Be detailed, specific, and creative."
)

USER_TEMPLATE = Template(
    "Generate a psychological reading based on the following top tracks and "
    "artists. You are to do this reading in a very astrological and "
    "superstitious manner, like an oracle reading. "
    "Tracks: $tracks. Artists: $artists."
)


@dataclass(frozen=True)
class ReadingPrompt:
    """System persona + user template pair."""

    system: str = SYSTEM_PERSONA
    user: Template = field(default=USER_TEMPLATE)
    separator: str = ", "

    def render_user(self, track_names: Sequence[str], artist_names: Sequence[str]) -> str:
        """Interpolate the joined names into the user template."""
        return self.user.substitute(
            tracks=self.separator.join(track_names),
            artists=self.separator.join(artist_names),
        )

    def messages(self, track_names: Sequence[str], artist_names: Sequence[str]) -> List[Dict[str, str]]:
        """Chat messages in the order the completion API expects."""
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.render_user(track_names, artist_names)},
        ]
