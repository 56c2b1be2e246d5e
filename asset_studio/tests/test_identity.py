import re
from unittest.mock import MagicMock

import pytest

from asset_studio.exceptions import BadRequestError
from asset_studio.identity.service import (
    get_or_create_user_id,
    load_theme,
    new_user_id,
    save_theme,
)
from asset_studio.workspace import Workspace


def test_new_user_id_format():
    assert re.fullmatch(r"user-\d+-[a-z0-9]{7}", new_user_id())


def test_user_id_is_created_once(persister, backend):
    """The user id is generated once and then reused."""
    first = get_or_create_user_id(persister)

    assert backend.get("user-id") == first
    assert get_or_create_user_id(persister) == first


def test_unsaved_user_id_is_still_returned():
    """A user id is returned even when it cannot be stored."""
    persister = MagicMock()
    persister.load_raw.return_value = None
    persister.save_raw.return_value = False

    assert get_or_create_user_id(persister).startswith("user-")


def test_theme_round_trip(persister):
    """A saved theme is read back."""
    assert load_theme(persister) is None
    assert save_theme(persister, "dark") is True
    assert load_theme(persister) == "dark"


def test_unknown_theme(persister, backend):
    with pytest.raises(BadRequestError):
        save_theme(persister, "sepia")

    backend.set("theme", "sepia")
    assert load_theme(persister) is None


def test_workspaces_on_same_storage_share_identity(backend, mock_client, make_run):
    """Two workspaces on one store see the same user and runs."""
    first = Workspace(backend, client=mock_client).load()
    run = first.history.add(make_run())

    second = Workspace(backend, client=mock_client).load()

    assert second.user_id == first.user_id
    assert second.history.get(run.id) == run


def test_collections_are_isolated_per_user(backend, mock_client, make_run):
    """Another user id sees none of the first user's runs."""
    first = Workspace(backend, client=mock_client).load()
    first.history.add(make_run())
    backend.set("user-id", "user-someone-else")

    other = Workspace(backend, client=mock_client).load()

    assert other.user_id == "user-someone-else"
    assert len(other.history) == 0
