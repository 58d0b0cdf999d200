"""Split message text into plain-text and URL segments."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import List, Union

URL_PATTERN = re.compile(r"https?://[^\s<>\[\]()]+")


@dataclass(frozen=True)
class PlainSegment:
    text: str


@dataclass(frozen=True)
class UrlSegment:
    text: str


TextSegment = Union[PlainSegment, UrlSegment]


def segment(text: str) -> List[TextSegment]:
    """Partition text into ordered Plain/Url segments.

    Joining the segment texts gives back the input unchanged. Adjacent URLs
    are not separated by an empty plain segment, and an empty input yields
    an empty list.
    """

    segments: List[TextSegment] = []
    last_end = 0
    for match in URL_PATTERN.finditer(text):
        if match.start() > last_end:
            segments.append(PlainSegment(text[last_end : match.start()]))
        segments.append(UrlSegment(match.group(0)))
        last_end = match.end()

    if last_end < len(text):
        segments.append(PlainSegment(text[last_end:]))
    return segments
