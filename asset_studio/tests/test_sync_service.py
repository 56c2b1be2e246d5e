import pytest

from asset_studio.exceptions import NotFoundError
from asset_studio.gallery.service import GalleryStore
from asset_studio.history.service import HistoryStore
from asset_studio.storage.service import GALLERY_COLLECTION, HISTORY_COLLECTION
from asset_studio.sync.service import Synchronizer


@pytest.fixture
def sync(persister) -> Synchronizer:
    return Synchronizer(HistoryStore(persister), GalleryStore(persister))


def test_update_reaches_history_gallery_and_detail(sync, persister, make_run):
    """One update reaches history, then gallery, then the detail view."""
    run = sync.history.add(make_run())
    image = run.generated_images[0]
    sync.toggle_gallery(run.id, image.id)
    sync.open_detail(image.id)

    sync.update_image(run.id, image.id, {"src": "data:new", "generation_time": 1200})

    assert sync.history.find_image(run.id, image.id).src == "data:new"
    assert sync.gallery.get_by_image(image.id).src == "data:new"
    assert sync.gallery.get_by_image(image.id).generation_time == 1200
    assert sync.detail.src == "data:new"
    assert persister.load(HISTORY_COLLECTION)[0]["generatedImages"][0]["src"] == "data:new"
    assert persister.load(GALLERY_COLLECTION)[0]["src"] == "data:new"


def test_update_unresolved_pair_changes_nothing(sync, make_run):
    """An unknown image leaves every view alone."""
    run = sync.history.add(make_run())
    before = sync.history.items

    assert sync.update_image(run.id, "gone", {"src": "data:new"}) is None
    assert sync.history.items == before


def test_detail_for_other_image_is_untouched(sync, make_run):
    run = sync.history.add(make_run(count=2))
    first, second = run.generated_images
    detail = sync.open_detail(second.id)

    sync.update_image(run.id, first.id, {"src": "data:new"})

    assert sync.detail == detail


def test_toggle_favorite_round_trip(sync, make_run):
    """Favoriting twice restores the original state."""
    run = sync.history.add(make_run())
    image = run.generated_images[0]

    assert sync.toggle_favorite(run.id, image.id).is_favorite is True
    assert [f.id for f in sync.favorites()] == [image.id]
    assert sync.toggle_favorite(run.id, image.id).is_favorite is False
    assert sync.favorites() == []


def test_toggle_gallery_unknown_image(sync):
    with pytest.raises(NotFoundError):
        sync.toggle_gallery("1", "missing")


def test_delete_image_clears_gallery_and_detail(sync, make_run):
    """Deleting an image removes it from the gallery and closes its detail view."""
    run = sync.history.add(make_run(count=2))
    image = run.generated_images[0]
    sync.toggle_gallery(run.id, image.id)
    sync.open_detail(image.id)

    assert sync.delete_image(run.id, image.id) is True

    assert not sync.gallery.contains(image.id)
    assert sync.detail is None
    assert sync.history.locate(image.id) is None


def test_delete_history_item_keeps_gallery_snapshot(sync, make_run):
    """Deleting a run keeps its gallery snapshots."""
    run = sync.history.add(make_run())
    image = run.generated_images[0]
    sync.toggle_gallery(run.id, image.id)
    sync.open_detail(image.id)

    assert sync.delete_history_item(run.id) is True

    assert sync.history.get(run.id) is None
    assert sync.gallery.contains(image.id)
    assert sync.detail is None
    assert sync.delete_history_item(run.id) is False


def test_open_detail_from_history(sync, make_run):
    """An image outside the gallery opens with a synthetic entry."""
    run = sync.history.add(make_run("a misty forest"))
    image = run.generated_images[0]

    detail = sync.open_detail(image.id)

    assert detail.id == f"detail-{image.id}"
    assert detail.history_id == run.id
    assert detail.prompt == "a misty forest"
    assert not sync.gallery.contains(image.id)

    sync.close_detail()
    assert sync.detail is None


def test_open_detail_unknown_image(sync):
    with pytest.raises(NotFoundError):
        sync.open_detail("missing")
