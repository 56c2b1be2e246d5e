from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from asset_studio.exceptions import GenerationError, GenerationRefusedError, StorageFullError
from asset_studio.main import app
from asset_studio.workspace import get_workspace


@pytest.fixture
def client(workspace):
    app.dependency_overrides[get_workspace] = lambda: workspace
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def run(workspace, make_run, png_src):
    return workspace.history.add(make_run("a red fox", count=2, src=png_src))


def test_identity_and_theme(client, workspace):
    """GET /me returns the user id and PUT /me/theme validates the value."""
    response = client.get("/me")
    assert response.status_code == 200
    assert response.json()["user_id"] == workspace.user_id

    response = client.put("/me/theme", json={"theme": "dark"})
    assert response.status_code == 200
    assert response.json()["theme"] == "dark"

    assert client.put("/me/theme", json={"theme": "sepia"}).status_code == 422


def test_create_returns_new_run(client, workspace):
    """A successful create shows up as the only history run."""
    response = client.post("/edits/create", json={"prompt": "a fox", "seed": 3})

    assert response.status_code == 200
    item = response.json()["history_item"]
    assert item["prompt"] == "a fox"
    assert len(item["generatedImages"]) == 1
    assert [run["id"] for run in client.get("/history").json()] == [item["id"]]


def test_create_errors_map_to_statuses(client, mock_client):
    """Bad input is 400 and a refused generation is 502."""
    assert client.post("/edits/create", json={"prompt": " "}).status_code == 400

    mock_client.generate.side_effect = GenerationRefusedError()
    response = client.post("/edits/create", json={"prompt": "a fox"})
    assert response.status_code == 502
    assert "No images were generated" in response.json()["detail"]


def test_storage_full_is_507(client, workspace):
    """StorageFullError surfaces as 507 Insufficient Storage."""
    with patch.object(
        workspace.edits, "create", AsyncMock(side_effect=StorageFullError())
    ):
        response = client.post("/edits/create", json={"prompt": "a fox"})

    assert response.status_code == 507
    assert "Storage is full" in response.json()["detail"]


def test_series_failure_reports_step(client, workspace, mock_client):
    """A failed series reports its step and persists nothing."""
    mock_client.generate.side_effect = [["data:1"], GenerationError("boom")]

    response = client.post(
        "/edits/series", json={"base_prompt": "a knight", "changes": ["walks", "runs"]}
    )

    assert response.status_code == 502
    assert response.json()["detail"] == "Error on step 2: boom"
    assert client.get("/history").json() == []


def test_replace_propagates_to_gallery(client, run):
    """A replaced image keeps its id and the gallery sees the new src."""
    image_id = run.generated_images[0].id
    client.post(f"/gallery/{run.id}/images/{image_id}")

    response = client.post(
        "/edits/replace",
        json={
            "action": "remix",
            "history_id": run.id,
            "image_id": image_id,
            "instruction": "make it winter",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["applied"] is True
    assert body["image"]["id"] == image_id
    gallery = client.get("/gallery").json()
    assert gallery[0]["src"] == body["image"]["src"]


def test_replace_unknown_image_is_404(client):
    """Replacing an image that does not exist is a 404."""
    response = client.post(
        "/edits/replace",
        json={"action": "upscale", "history_id": "1", "image_id": "missing"},
    )
    assert response.status_code == 404


def test_edit_status_idle(client, run):
    """An image with no edit in flight reports idle."""
    image_id = run.generated_images[0].id

    response = client.get("/edits/status", params={"history_id": run.id, "image_id": image_id})

    assert response.json() == {
        "state": "idle",
        "action": None,
        "series_step": None,
        "series_total": None,
    }


def test_favorites_and_search(client, run):
    """Favoriting feeds /favorites and search matches prompts case-insensitively."""
    image_id = run.generated_images[1].id

    response = client.post(f"/history/{run.id}/images/{image_id}/favorite")
    assert response.json()["isFavorite"] is True

    favorites = client.get("/favorites").json()
    assert [f["id"] for f in favorites] == [image_id]
    assert favorites[0]["index"] == 1

    assert len(client.get("/history", params={"q": "FOX"}).json()) == 1
    assert client.get("/history", params={"q": "owl"}).json() == []


def test_gallery_toggle(client, run):
    """Toggling twice adds then removes the gallery entry."""
    image_id = run.generated_images[0].id

    assert client.post(f"/gallery/{run.id}/images/{image_id}").json() == {"in_gallery": True}
    assert client.get("/gallery").json()[0]["imageId"] == image_id
    assert client.post(f"/gallery/{run.id}/images/{image_id}").json() == {"in_gallery": False}
    assert client.get("/gallery").json() == []
    assert client.post(f"/gallery/{run.id}/images/missing").status_code == 404


def test_delete_image_and_run(client, run):
    """Deletes are 204 once and 404 afterwards."""
    first, second = run.generated_images

    assert client.delete(f"/history/{run.id}/images/{first.id}").status_code == 204
    assert client.delete(f"/history/{run.id}/images/{first.id}").status_code == 404
    assert client.delete(f"/history/{run.id}").status_code == 204
    assert client.delete(f"/history/{run.id}").status_code == 404


def test_detail_view(client, run):
    """The detail view opens, closes and rejects unknown images."""
    image_id = run.generated_images[0].id

    response = client.post(f"/detail/{image_id}")
    assert response.status_code == 200
    assert client.get("/detail").json()["imageId"] == image_id

    assert client.delete("/detail").status_code == 204
    assert client.get("/detail").json() is None
    assert client.post("/detail/missing").status_code == 404


def test_folders(client, run):
    """Folder CRUD and moving a run in and out of a folder."""
    folder = client.post("/folders", json={"name": "Drafts"}).json()

    moved = client.put(f"/history/{run.id}/folder", json={"folder_id": folder["id"]})
    assert moved.json()["folderId"] == folder["id"]
    assert len(client.get("/history", params={"folder_id": folder["id"]}).json()) == 1

    renamed = client.put(f"/folders/{folder['id']}", json={"name": "Finals"})
    assert renamed.json()["name"] == "Finals"

    assert client.delete(f"/folders/{folder['id']}").status_code == 204
    assert client.get("/history").json()[0]["folderId"] is None
    assert client.delete(f"/folders/{folder['id']}").status_code == 404
    assert client.post("/folders", json={"name": " "}).status_code == 400


def test_settings_and_profiles(client):
    """Settings accept either key style and profiles restore them."""
    response = client.patch("/settings", json={"baseModel": "Anime V2", "stylistic_budget": 55})
    assert response.status_code == 200
    assert response.json()["baseModel"] == "Anime V2"
    assert response.json()["stylisticBudget"] == 55

    profile = client.post("/profiles", json={"name": "Anime"})
    assert profile.status_code == 201
    profile_id = profile.json()["id"]

    client.patch("/settings", json={"baseModel": "Photorealism V3"})
    applied = client.post(f"/profiles/{profile_id}/apply").json()
    assert applied["baseModel"] == "Anime V2"
    assert client.get("/settings").json()["baseModel"] == "Anime V2"

    assert [p["name"] for p in client.get("/profiles").json()] == ["Anime"]
    assert client.delete(f"/profiles/{profile_id}").status_code == 204
    assert client.post(f"/profiles/{profile_id}/apply").status_code == 404

    assert client.patch("/settings", json={"stylisticBudget": "lots"}).status_code == 422


def test_prompt_tools(client, mock_client, png_src):
    """Refine and narrate proxy to the generation client."""
    response = client.post("/prompt/refine", json={"prompt": "a cat", "locale": "vi"})
    assert response.json() == {"text": "a refined prompt"}
    mock_client.refine.assert_awaited_once_with("a cat", "vi")

    response = client.post("/prompt/narrate", json={"images": [png_src]})
    assert response.json() == {"text": "a short story"}

    mock_client.refine.side_effect = GenerationError("Prompt refinement failed: nope")
    response = client.post("/prompt/refine", json={"prompt": "a cat"})
    assert response.status_code == 502
