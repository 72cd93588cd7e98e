from dataclasses import dataclass
from typing import Optional

from app.services import reconcile_images


@dataclass
class _Image:
    id: Optional[int]
    image_path: str


def _existing():
    return [_Image(1, "a.png"), _Image(2, "b.png"), _Image(3, "c.png")]


def test_keeping_every_image_without_uploads_changes_nothing():
    existing = _existing()
    plan = reconcile_images(existing, [1, 2, 3], [])
    assert plan.final_images == existing
    assert plan.to_delete == []


def test_empty_keep_list_replaces_all_images():
    existing = _existing()
    upload = _Image(None, "d.png")
    for keep_ids in (None, [], set()):
        plan = reconcile_images(existing, keep_ids, [upload])
        assert plan.to_delete == existing
        assert plan.final_images == [upload]


def test_new_images_come_before_kept_ones():
    a, b, c = _existing()
    d = _Image(None, "d.png")
    plan = reconcile_images([a, b, c], [2, 3], [d])
    assert [image.image_path for image in plan.final_images] == ["d.png", "b.png", "c.png"]
    assert plan.to_delete == [a]


def test_final_size_is_uploads_plus_kept_existing():
    existing = _existing()
    uploads = [_Image(None, "x.png"), _Image(None, "y.png")]
    plan = reconcile_images(existing, [3, 42], uploads)
    assert len(plan.final_images) == len(uploads) + 1
    assert [image.image_path for image in plan.to_delete] == ["a.png", "b.png"]


def test_kept_images_keep_their_relative_order():
    existing = _existing()
    plan = reconcile_images(existing, [3, 1])
    assert [image.id for image in plan.final_images] == [1, 3]


def test_duplicate_keep_ids_do_not_duplicate_images():
    existing = _existing()
    plan = reconcile_images(existing, [2, 2, 2])
    assert [image.id for image in plan.final_images] == [2]
    assert [image.id for image in plan.to_delete] == [1, 3]


def test_product_without_images_only_gets_uploads():
    upload = _Image(None, "new.png")
    plan = reconcile_images([], [5], [upload])
    assert plan.final_images == [upload]
    assert plan.to_delete == []
