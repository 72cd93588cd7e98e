"""Compute how a product's image collection changes on update.

Nothing here touches the database or the blob store: callers pass in the
images the product currently owns, the ids the client asked to keep and the
records built for freshly stored uploads, and get back the target collection
plus the images whose blobs must go once the change is committed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Sequence, TypeVar


class ImageLike(Protocol):
    id: Optional[int]


ImageT = TypeVar("ImageT", bound=ImageLike)


@dataclass(frozen=True)
class ImageReconciliation:
    final_images: list = field(default_factory=list)
    to_delete: list = field(default_factory=list)


def reconcile_images(
    existing: Sequence[ImageT],
    keep_ids: Optional[Iterable[int]],
    newly_stored: Sequence[ImageT] = (),
) -> ImageReconciliation:
    """Return ``new ++ kept`` and the existing images that are not kept.

    An empty or missing keep list means every existing image is replaced.
    Keep ids that do not belong to ``existing`` are ignored.
    """

    keep = set(keep_ids or ())
    kept: list[ImageT] = []
    to_delete: list[ImageT] = []
    seen: set[int] = set()
    for image in existing:
        if image.id in seen:
            continue
        seen.add(image.id)
        if image.id in keep:
            kept.append(image)
        else:
            to_delete.append(image)
    return ImageReconciliation(final_images=[*newly_stored, *kept], to_delete=to_delete)
