from app.services.image_patch import UNSET, ImagePatch, merge_image_patch

CURRENT = {"caption": "Sunset", "group_id": "g1", "tags": ["beach"]}


def test_empty_patch_changes_nothing():
    patch = ImagePatch()

    assert patch.is_empty()
    assert merge_image_patch(CURRENT, patch) == {}


def test_caption_is_stripped():
    changes = merge_image_patch(CURRENT, ImagePatch(caption="  Sunrise "))

    assert changes == {"caption": "Sunrise"}


def test_same_caption_is_not_a_change():
    assert merge_image_patch(CURRENT, ImagePatch(caption="Sunset ")) == {}


def test_group_can_be_cleared():
    changes = merge_image_patch(CURRENT, ImagePatch(group_id=None))

    assert changes == {"group_id": None}


def test_unset_group_is_left_alone():
    patch = ImagePatch(caption="Sunset", group_id=UNSET)

    assert "group_id" not in merge_image_patch(CURRENT, patch)


def test_tags_are_normalized():
    changes = merge_image_patch(CURRENT, ImagePatch(tags=["Beach", " Sea ", "beach"]))

    assert changes == {"tags": ["beach", "sea"]}


def test_tags_can_be_cleared():
    assert merge_image_patch(CURRENT, ImagePatch(tags=[])) == {"tags": []}
