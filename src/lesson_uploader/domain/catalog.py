from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Library:
    library_id: str
    name: str
    api_key: str = ""


@dataclass(frozen=True)
class Collection:
    collection_id: str
    name: str


@dataclass(frozen=True)
class Video:
    video_id: str
    title: str


def normalize_library_name(name: str) -> str:
    return " ".join(name.split()).lower()
