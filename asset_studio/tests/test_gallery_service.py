import json

import pytest

from asset_studio.gallery.service import GalleryStore
from asset_studio.history.service import HistoryStore
from asset_studio.storage.service import GALLERY_COLLECTION


@pytest.fixture
def history(persister) -> HistoryStore:
    return HistoryStore(persister)


@pytest.fixture
def gallery(persister) -> GalleryStore:
    return GalleryStore(persister)


def test_toggle_twice_restores_original_contents(gallery, history, make_run):
    """Toggling an image in and out restores the gallery exactly."""
    existing = history.add(make_run("existing"))
    gallery.toggle(existing.generated_images[0], existing)
    before = gallery.entries

    run = history.add(make_run("fox"))
    image = run.generated_images[0]

    assert gallery.toggle(image, run) is True
    assert gallery.contains(image.id)
    assert gallery.toggle(image, run) is False
    assert gallery.entries == before


def test_toggle_snapshots_run_fields(gallery, history, make_run):
    """A gallery entry copies the prompt and settings of its run."""
    run = history.add(make_run("a lighthouse at dusk"))
    image = run.generated_images[0]

    gallery.toggle(image, run)

    entry = gallery.get_by_image(image.id)
    assert entry.history_id == run.id
    assert entry.src == image.src
    assert entry.prompt == "a lighthouse at dusk"
    assert entry.id.startswith("gallery-")


def test_gallery_drops_oldest_past_limit(persister, history, make_run):
    """Past the limit the oldest entry falls off first."""
    gallery = GalleryStore(persister, limit=2)
    runs = [history.add(make_run(f"run {i}")) for i in range(3)]
    for run in runs:
        gallery.toggle(run.generated_images[0], run)

    assert [entry.history_id for entry in gallery.entries] == [runs[1].id, runs[2].id]


def test_load_removes_duplicate_image_ids(persister, backend):
    """Duplicate image ids collapse to one entry on load."""
    entries = [
        {"id": "gallery-1", "imageId": "img", "historyId": "1", "src": "data:a"},
        {"id": "gallery-2", "imageId": "img", "historyId": "1", "src": "data:a"},
        {"id": "gallery-3", "imageId": "other", "historyId": "1", "src": "data:b"},
    ]
    backend.set("gallery-collection-user-test", json.dumps(entries))
    gallery = GalleryStore(persister)

    loaded = gallery.load()

    assert [entry.id for entry in loaded] == ["gallery-1", "gallery-3"]


def test_refresh_persists_only_on_change(gallery, history, persister, make_run):
    """Refreshing with identical values writes nothing."""
    run = history.add(make_run())
    image = run.generated_images[0]
    gallery.toggle(image, run)

    assert gallery.refresh(image.id, {"src": image.src}) is False
    assert gallery.refresh(image.id, {"src": "data:new", "is_favorite": True}) is True

    stored = persister.load(GALLERY_COLLECTION)
    assert stored[0]["src"] == "data:new"
    assert "isFavorite" not in stored[0]


def test_refresh_unknown_image_is_noop(gallery):
    assert gallery.refresh("missing", {"src": "data:new"}) is False
