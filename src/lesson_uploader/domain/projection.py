from __future__ import annotations

from .models import QueueItem, UploadGroup

MANUAL_SELECTION_LABEL = "Needs selection"


def project_groups(queue: list[QueueItem], manual: list[QueueItem]) -> list[UploadGroup]:
    """
    Bucket items by (library name, collection name) for display.

    The manual-selection bucket always comes first when it has items. Groups are
    keyed by display names, so two libraries sharing a name land in one group.
    """
    groups: list[UploadGroup] = []
    if manual:
        groups.append(
            UploadGroup(
                library=MANUAL_SELECTION_LABEL,
                collection=MANUAL_SELECTION_LABEL,
                items=tuple(item.view() for item in manual),
                needs_manual_selection=True,
            )
        )

    buckets: dict[tuple[str, str], list[QueueItem]] = {}
    for item in queue:
        buckets.setdefault((item.target_library, item.target_collection), []).append(item)
    for (library, collection), items in buckets.items():
        groups.append(
            UploadGroup(
                library=library,
                collection=collection,
                items=tuple(item.view() for item in items),
            )
        )
    return groups
