import pytest

from storage import ClientStorage, KeyValueStore, MemoryStore, MongoStore


def test_key_value_store_is_abstract():
    with pytest.raises(TypeError):
        KeyValueStore()


def test_slots_are_scoped_per_client():
    store = MemoryStore()
    ClientStorage(store, "a").save("theme", "dark")
    assert ClientStorage(store, "a").load("theme") == "dark"
    assert ClientStorage(store, "b").load("theme", "light") == "light"


def test_unreadable_value_falls_back_to_default():
    store = MemoryStore()
    store.set_item("a", "cart_1", "{not json")
    assert ClientStorage(store, "a").load("cart_1", []) == []


def test_mongo_store_upserts_and_removes(db):
    storage = ClientStorage(MongoStore(db["storage"]), "a")
    storage.save("cart_1", [{"id": "1__"}])
    storage.save("cart_1", [])
    assert db["storage"].count_documents({}) == 1
    assert storage.load("cart_1") == []

    storage.remove("cart_1")
    assert storage.load("cart_1") is None
