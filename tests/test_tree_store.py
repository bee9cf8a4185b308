import json
import os
import pytest
from datetime import timedelta
from decision_app.core.errors import StorageError
from decision_app.models.decision_tree import DecisionTree, DecisionNode, DecisionOption, utc_now
from decision_app.services.tree_store import DecisionTreeStore

def make_tree(tree_id="t1", user_id="user1", updated_offset=0):
    now = utc_now()
    root = DecisionNode(id=f"{tree_id}-root", title="Root", content="Body",
                        options=[DecisionOption(id="o1", text="One")])
    child = DecisionNode(id=f"{tree_id}-child", title="Child", parent_id=root.id, parent_option="o1", is_final=True)
    return DecisionTree(
        id=tree_id, title="Root", topic="Topic", context="Ctx", user_id=user_id,
        current_node_id=child.id, nodes={root.id: root, child.id: child},
        created_at=now, updated_at=now + timedelta(seconds=updated_offset)
    )

@pytest.fixture
def store(tmp_path):
    return DecisionTreeStore(path=str(tmp_path / "trees.json"))

def test_save_and_get_round_trip(store):
    tree = make_tree()
    store.save(tree)
    loaded = store.get_by_id(tree.id)
    assert loaded == tree

def test_row_columns_in_sync(store):
    tree = make_tree()
    store.save(tree)
    with open(store.path) as f:
        row = json.load(f)[tree.id]
    assert row["user_id"] == "user1"
    assert row["current_node_id"] == tree.current_node_id
    assert row["title"] == tree.title
    assert row["topic"] == "Topic"
    assert row["context"] == "Ctx"
    assert row["data"]["id"] == tree.id
    assert row["updated_at"] == row["data"]["updated_at"]

def test_save_is_idempotent_upsert(store):
    tree = make_tree()
    store.save(tree)
    moved = tree.model_copy(update={"current_node_id": "t1-root"})
    store.save(moved)
    store.save(moved)
    assert store.get_by_id(tree.id).current_node_id == "t1-root"
    assert len(store.list_by_owner("user1")) == 1

def test_get_missing_returns_none(store):
    assert store.get_by_id("nope") is None

def test_list_by_owner_orders_and_limits(store):
    store.save(make_tree("old", updated_offset=0))
    store.save(make_tree("new", updated_offset=10))
    store.save(make_tree("mid", updated_offset=5))
    store.save(make_tree("other", user_id="user2"))

    assert [t.id for t in store.list_by_owner("user1")] == ["new", "mid", "old"]
    assert [t.id for t in store.list_by_owner("user1", limit=2)] == ["new", "mid"]
    assert [t.id for t in store.list_by_owner("user2")] == ["other"]
    assert store.list_by_owner("nobody") == []

def test_save_refuses_other_owner(store):
    store.save(make_tree())
    with pytest.raises(StorageError):
        store.save(make_tree(user_id="intruder"))
    assert store.get_by_id("t1").user_id == "user1"

def test_get_by_id_is_unchecked(store):
    store.save(make_tree())
    tree = store.get_by_id("t1")
    assert tree is not None
    assert tree.user_id == "user1"

def test_delete(store):
    store.save(make_tree())
    store.delete_by_id("t1")
    assert store.get_by_id("t1") is None
    store.delete_by_id("t1")

def test_delete_refuses_other_owner(store):
    store.save(make_tree())
    with pytest.raises(StorageError):
        store.delete_by_id("t1", owner_id="user2")
    assert store.get_by_id("t1") is not None

def test_corrupt_file_raises_storage_error(store):
    os.makedirs(os.path.dirname(store.path), exist_ok=True)
    with open(store.path, "w") as f:
        f.write("{not json")
    with pytest.raises(StorageError):
        store.get_by_id("t1")

def test_unwritable_path_raises_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")
    store = DecisionTreeStore(path=str(blocker / "trees.json"))
    with pytest.raises(StorageError):
        store.save(make_tree())
