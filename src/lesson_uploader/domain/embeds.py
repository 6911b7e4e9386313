from __future__ import annotations

from dataclasses import dataclass, field

from .filenames import strip_extension
from .models import EmbedRecord

DEFAULT_EMBED_BASE_URL = "https://iframe.mediadelivery.net/embed"

_EMBED_TEMPLATE = (
    '<div style="position:relative;padding-top:56.25%;">'
    '<iframe src="{base_url}/{library_id}/{video_id}'
    '?autoplay=false&loop=false&muted=false&preload=true&responsive=true" '
    'loading="lazy" style="border:0;position:absolute;top:0;height:100%;width:100%;" '
    'allow="accelerometer;gyroscope;autoplay;encrypted-media;picture-in-picture;" '
    'allowfullscreen="true"></iframe></div>'
)


def build_embed_code(
    library_id: str, video_id: str, base_url: str = DEFAULT_EMBED_BASE_URL
) -> str:
    return _EMBED_TEMPLATE.format(
        base_url=base_url.rstrip("/"), library_id=library_id, video_id=video_id
    )


def clean_video_name(name: str) -> str:
    """
    Normalize a video or sheet name for matching.

    Examples:
        >>> clean_video_name("  M2-SCI-P0078-Ahmed--{Intro}.MP4 ")
        'm2-sci-p0078-ahmed--{intro}'
    """
    return strip_extension(name).strip().lower()


def column_index(letter: str) -> int:
    """
    Zero-based index of a spreadsheet column letter.

    Examples:
        >>> column_index("A")
        0
        >>> column_index("W")
        22
        >>> column_index("AA")
        26
    """
    index = 0
    for char in letter.strip().upper():
        if not "A" <= char <= "Z":
            raise ValueError(f"Invalid column letter: {letter}")
        index = index * 26 + (ord(char) - ord("A") + 1)
    if index == 0:
        raise ValueError(f"Invalid column letter: {letter}")
    return index - 1


@dataclass(frozen=True)
class CellUpdate:
    row_number: int
    name: str
    embed_code: str


@dataclass
class EmbedUpdatePlan:
    updates: list[CellUpdate] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def plan_embed_updates(
    rows: list[list[str]], videos: list[EmbedRecord], embed_offset: int
) -> EmbedUpdatePlan:
    """
    Decide which sheet rows receive which embed codes.

    ``rows`` is the raw value grid starting at the name column on sheet row 1;
    ``embed_offset`` is the embed column's distance from the name column. A row
    whose embed cell already holds a value is never written, and a row is
    claimed by at most one video per plan.
    """
    name_to_row: dict[str, int] = {}
    for index, row in enumerate(rows):
        if row and str(row[0]).strip():
            name_to_row.setdefault(clean_video_name(str(row[0])), index)

    plan = EmbedUpdatePlan()
    claimed: set[int] = set()
    for video in videos:
        index = name_to_row.get(clean_video_name(video.name))
        if index is None:
            plan.not_found.append(video.name)
            continue
        row = rows[index]
        existing = row[embed_offset] if len(row) > embed_offset else ""
        if str(existing).strip() or index in claimed:
            plan.skipped.append(video.name)
            continue
        claimed.add(index)
        plan.updates.append(
            CellUpdate(row_number=index + 1, name=video.name, embed_code=video.embed_code)
        )
    return plan
