"""File-backed catalog storage.

Products and stock items are small flat records kept as JSON arrays on disk.
Every read loads the whole collection and every write replaces the whole
file, so callers always see a complete snapshot.
"""
import json
import logging
import os
import tempfile
import uuid

from flask import current_app

from clock import ist_now

logger = logging.getLogger(__name__)

DEFAULT_STOCK = [
    {"id": "sugar", "name": "Sugar", "quantity": 100, "unit": "kg"},
    {"id": "milk", "name": "Milk", "quantity": 50, "unit": "liters"},
]

DEFAULT_PRODUCTS = [
    {"id": "pedha-1", "name": "Kesar Pedha", "price": 200, "unit": "kg", "description": "Premium Kesar Pedha"},
    {"id": "pedha-2", "name": "Chocolate Pedha", "price": 250, "unit": "kg", "description": "Delicious Chocolate Pedha"},
    {"id": "pedha-3", "name": "Plain Pedha", "price": 180, "unit": "kg", "description": "Traditional Plain Pedha"},
]

LOW_STOCK_LEVEL = 10
GOOD_STOCK_LEVEL = 50


class CatalogStorageError(Exception):
    pass


class JsonCollection:
    """A JSON array on disk, read and written as one unit."""

    def __init__(self, path, defaults=None):
        self.path = path
        self.defaults = defaults or []

    def ensure(self):
        """Seed the file with the default records if it does not exist yet."""
        if not os.path.exists(self.path):
            seeded = []
            for record in self.defaults:
                record = dict(record)
                record.setdefault("lastUpdated", ist_now().isoformat())
                seeded.append(record)
            self.save(seeded)

    def load(self):
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.error("Error reading %s: %s", self.path, e)
            return []
        return data if isinstance(data, list) else []

    def save(self, records):
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = None, None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fd = None
                json.dump(records, fh, indent=2, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if fd is not None:
                os.close(fd)
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            logger.error("Error writing %s: %s", self.path, e)
            raise CatalogStorageError(f"could not write {self.path}") from e


class CatalogRepository:
    """Record-level operations on top of a whole-file collection."""

    stamp_field = "updatedAt"
    created_field = "createdAt"

    def __init__(self, collection):
        self.collection = collection

    def all(self):
        return self.collection.load()

    def get(self, record_id):
        for record in self.collection.load():
            if record.get("id") == record_id:
                return record
        return None

    def add(self, fields):
        records = self.collection.load()
        record = {"id": str(uuid.uuid4())}
        record.update(fields)
        if self.created_field:
            record[self.created_field] = ist_now().isoformat()
        records.append(record)
        self.collection.save(records)
        return record

    def update(self, record_id, fields):
        records = self.collection.load()
        for i, record in enumerate(records):
            if record.get("id") == record_id:
                merged = dict(record)
                merged.update(fields)
                merged[self.stamp_field] = ist_now().isoformat()
                records[i] = merged
                self.collection.save(records)
                return merged
        return None

    def delete(self, record_id):
        records = self.collection.load()
        remaining = [r for r in records if r.get("id") != record_id]
        self.collection.save(remaining)
        return len(remaining) != len(records)


class ProductRepository(CatalogRepository):

    def names_by_id(self):
        return {p.get("id"): p.get("name") for p in self.all()}

    def price_stats(self):
        prices = [float(p.get("price") or 0) for p in self.all()]
        if not prices:
            return {"average": 0, "min": 0, "max": 0}
        return {
            "average": round(sum(prices) / len(prices)),
            "min": min(prices),
            "max": max(prices),
        }


class StockRepository(CatalogRepository):
    stamp_field = "lastUpdated"
    created_field = "lastUpdated"

    def low_stock(self):
        return [s for s in self.all() if float(s.get("quantity") or 0) < LOW_STOCK_LEVEL]

    def level_counts(self):
        counts = {"low": 0, "medium": 0, "good": 0}
        for item in self.all():
            qty = float(item.get("quantity") or 0)
            if qty < LOW_STOCK_LEVEL:
                counts["low"] += 1
            elif qty < GOOD_STOCK_LEVEL:
                counts["medium"] += 1
            else:
                counts["good"] += 1
        return counts


def init_catalog(app):
    data_dir = app.config["DATA_DIR"]
    products = JsonCollection(os.path.join(data_dir, "products.json"), DEFAULT_PRODUCTS)
    stock = JsonCollection(os.path.join(data_dir, "stock.json"), DEFAULT_STOCK)
    products.ensure()
    stock.ensure()
    app.extensions["catalog"] = {
        "products": ProductRepository(products),
        "stock": StockRepository(stock),
    }


def products_repo():
    return current_app.extensions["catalog"]["products"]


def stock_repo():
    return current_app.extensions["catalog"]["stock"]
