"""Credential store: uniqueness, hashing on write, no digests on read."""

import pytest

from app.core.exceptions import ConflictError, ValidationError
from app.core.security import verify_password
from app.schemas.user import UserRead


async def test_create_hashes_password(store):
    created = await store.create("Alice Smith", "alice", "secret123", "user")
    assert isinstance(created, UserRead)
    assert created.is_active is True
    assert created.role == "user"
    assert created.created_at is not None

    record = await store.find_by_username("alice")
    assert record is not None
    assert record.password_hash != "secret123"
    assert verify_password("secret123", record.password_hash)


async def test_read_views_have_no_password_field(store):
    created = await store.create("Alice Smith", "alice", "secret123")
    listed = await store.list_all()
    for view in [created, *listed]:
        dumped = view.model_dump(by_alias=True)
        assert set(dumped) == {"id", "fullName", "username", "role", "isActive", "createdAt"}


async def test_duplicate_username_conflicts_without_partial_write(store):
    original = await store.create("Alice Smith", "alice", "secret123", "user")
    with pytest.raises(ConflictError):
        await store.create("Another Alice", "alice", "other-pass", "admin")

    assert await store.count() == 1
    (only,) = await store.list_all()
    assert only.id == original.id
    assert only.full_name == "Alice Smith"
    assert only.role == "user"
    record = await store.find_by_username("alice")
    assert verify_password("secret123", record.password_hash)


async def test_username_surrounding_whitespace_is_ignored(store):
    await store.create("Alice Smith", "  alice ", "secret123")
    assert (await store.find_by_username("alice")) is not None
    with pytest.raises(ConflictError):
        await store.create("Clone", "alice", "pw")


async def test_usernames_are_case_sensitive(store):
    await store.create("Alice Smith", "alice", "secret123")
    assert await store.find_by_username("Alice") is None


async def test_find_unknown_username(store):
    assert await store.find_by_username("nobody") is None


@pytest.mark.parametrize(
    "full_name, username, password, role",
    [
        ("Alice", "", "pw", "user"),
        ("Alice", "alice", "", "user"),
        ("", "alice", "pw", "user"),
        ("Alice", "alice", "pw", "superuser"),
        ("Alice", "alice", "x" * 73, "user"),
    ],
)
async def test_create_rejects_bad_shapes(store, full_name, username, password, role):
    with pytest.raises(ValidationError):
        await store.create(full_name, username, password, role)
    assert await store.count() == 0


async def test_list_all_newest_first(store):
    for name in ("first", "second", "third"):
        await store.create(name.title(), name, "pw")
    assert [u.username for u in await store.list_all()] == ["third", "second", "first"]


async def test_update_profile_partial(store):
    user = await store.create("Alice Smith", "alice", "secret123", "user")
    assert await store.update_profile(user.id, full_name="Alice Jones", role="admin")

    (updated,) = await store.list_all()
    assert updated.full_name == "Alice Jones"
    assert updated.role == "admin"
    assert updated.username == "alice"
    record = await store.find_by_username("alice")
    assert verify_password("secret123", record.password_hash)


async def test_update_profile_rehashes_new_password(store):
    user = await store.create("Alice Smith", "alice", "secret123")
    assert await store.update_profile(user.id, password="n3w-pass")
    record = await store.find_by_username("alice")
    assert verify_password("n3w-pass", record.password_hash)
    assert not verify_password("secret123", record.password_hash)


async def test_update_profile_empty_password_keeps_digest(store):
    user = await store.create("Alice Smith", "alice", "secret123")
    assert await store.update_profile(user.id, password="")
    record = await store.find_by_username("alice")
    assert verify_password("secret123", record.password_hash)


async def test_update_to_taken_username_changes_nothing(store):
    await store.create("Alice Smith", "alice", "secret123")
    bob = await store.create("Bob Brown", "bob", "bobpass")

    with pytest.raises(ConflictError):
        await store.update_profile(bob.id, username="alice", full_name="Bobby", role="admin")

    views = {u.username: u for u in await store.list_all()}
    assert set(views) == {"alice", "bob"}
    assert views["bob"].full_name == "Bob Brown"
    assert views["bob"].role == "user"


async def test_update_unknown_id(store):
    assert await store.update_profile("missing", full_name="X") is False


async def test_set_active_and_delete(store):
    user = await store.create("Alice Smith", "alice", "secret123")
    assert await store.set_active(user.id, False)
    (view,) = await store.list_all()
    assert view.is_active is False

    assert await store.delete(user.id)
    assert await store.count() == 0
    assert await store.delete(user.id) is False
    assert await store.set_active(user.id, True) is False


async def test_ensure_admin_is_idempotent(store):
    assert await store.ensure_admin("admin", "admin", "System Administrator") is True
    assert await store.ensure_admin("admin", "other", "System Administrator") is False

    record = await store.find_by_username("admin")
    assert record.role == "admin"
    assert verify_password("admin", record.password_hash)
    assert await store.count() == 1
