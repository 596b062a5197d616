"""
Partial update structure for image edits.

An ``ImagePatch`` holds one optional field per mutable image attribute.
``merge_image_patch`` applies it to the current values without touching the
database, so edit semantics can be tested in isolation.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from app.utils.validators import normalize_tags


class _Unset:
    """Marker for a field the client did not send."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


@dataclass(frozen=True)
class ImagePatch:
    # None leaves the caption unchanged; "" clears it
    caption: Optional[str] = None
    # UNSET leaves the group unchanged; None clears it
    group_id: Union[str, None, _Unset] = UNSET
    # None leaves tags unchanged; [] clears them
    tags: Optional[List[str]] = None

    def is_empty(self) -> bool:
        return self.caption is None and self.group_id is UNSET and self.tags is None


def merge_image_patch(current: Dict[str, Any], patch: ImagePatch) -> Dict[str, Any]:
    """
    Return the values that change when ``patch`` is applied to ``current``.

    Args:
        current: Mapping with caption, group_id and tags of the stored image
        patch: Requested edit

    Returns:
        dict: Only the keys whose value differs after normalization
    """
    changes: Dict[str, Any] = {}

    if patch.caption is not None:
        caption = patch.caption.strip()
        if caption != current.get("caption"):
            changes["caption"] = caption

    if patch.group_id is not UNSET and patch.group_id != current.get("group_id"):
        changes["group_id"] = patch.group_id

    if patch.tags is not None:
        tags = normalize_tags(patch.tags)
        if tags != list(current.get("tags") or []):
            changes["tags"] = tags

    return changes
