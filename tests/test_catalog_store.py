import json
import os

import pytest

from catalog.store import (
    CatalogStorageError,
    JsonCollection,
    ProductRepository,
    StockRepository,
    DEFAULT_PRODUCTS,
)


@pytest.fixture
def products(tmp_path):
    collection = JsonCollection(str(tmp_path / "products.json"), DEFAULT_PRODUCTS)
    collection.ensure()
    return ProductRepository(collection)


@pytest.fixture
def stock(tmp_path):
    return StockRepository(JsonCollection(str(tmp_path / "stock.json")))


def test_defaults_are_seeded_once(tmp_path, products):
    assert [p["id"] for p in products.all()] == ["pedha-1", "pedha-2", "pedha-3"]
    products.delete("pedha-3")
    products.collection.ensure()
    assert len(products.all()) == 2


def test_add_update_delete(products):
    added = products.add({"name": "Kaju Katli", "price": 600.0, "unit": "kg"})
    assert added["id"]
    assert "createdAt" in added
    assert products.get(added["id"])["name"] == "Kaju Katli"

    updated = products.update(added["id"], {"price": 650.0})
    assert updated["price"] == 650.0
    assert updated["name"] == "Kaju Katli"
    assert "updatedAt" in updated

    assert products.update("missing", {"price": 1}) is None
    assert products.delete(added["id"]) is True
    assert products.delete(added["id"]) is False
    assert products.get(added["id"]) is None


def test_save_writes_whole_snapshot_without_leftovers(tmp_path, products):
    products.add({"name": "Barfi", "price": 300})
    with open(tmp_path / "products.json", encoding="utf-8") as fh:
        on_disk = json.load(fh)
    assert len(on_disk) == 4
    assert [f for f in os.listdir(tmp_path) if f.startswith(".tmp-")] == []


def test_unreadable_file_loads_as_empty(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonCollection(str(path)).load() == []
    assert JsonCollection(str(tmp_path / "absent.json")).load() == []


def test_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    collection = JsonCollection(str(blocker / "stock.json"))
    with pytest.raises(CatalogStorageError):
        collection.save([{"id": "x"}])


def test_stock_levels(stock):
    for name, qty in (("Ghee", 5), ("Sugar", 10), ("Milk", 49.5), ("Kesar", 50), ("Flour", 200)):
        stock.add({"name": name, "quantity": qty, "unit": "kg"})
    assert stock.level_counts() == {"low": 1, "medium": 2, "good": 2}
    assert [s["name"] for s in stock.low_stock()] == ["Ghee"]
    assert all("lastUpdated" in s for s in stock.all())


def test_price_stats(products, stock):
    assert products.price_stats() == {"average": 210, "min": 180.0, "max": 250.0}
    assert ProductRepository(stock.collection).price_stats() == {"average": 0, "min": 0, "max": 0}
