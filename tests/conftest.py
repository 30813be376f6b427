import pytest

from zenith.app import create_app
from zenith.cache.expiring import ExpiringCache
from zenith.store.portal import PortalStore


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeCursor(list):
    def sort(self, field, direction=1):
        return FakeCursor(sorted(self, key=lambda d: d.get(field), reverse=direction < 0))


class FakeCollection:
    """Just enough of pymongo's Collection for PortalStore."""

    def __init__(self):
        self.docs = {}
        self.reads = 0

    @staticmethod
    def _project(doc, projection):
        if projection and projection.get("_id") == 0:
            return {k: v for k, v in doc.items() if k != "_id"}
        return dict(doc)

    def find(self, filter=None, projection=None):
        self.reads += 1
        return FakeCursor(self._project(d, projection) for d in self.docs.values())

    def find_one(self, filter, projection=None):
        self.reads += 1
        for doc in self.docs.values():
            if all(doc.get(k) == v for k, v in filter.items()):
                return self._project(doc, projection)
        return None

    def replace_one(self, filter, doc, upsert=False):
        if filter["_id"] in self.docs or upsert:
            self.docs[filter["_id"]] = dict(doc)

    def delete_one(self, filter):
        self.docs.pop(filter["_id"], None)


class FakeDB(dict):
    def __missing__(self, name):
        col = self[name] = FakeCollection()
        return col


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ExpiringCache(clock=clock)


@pytest.fixture
def db():
    return FakeDB()


@pytest.fixture
def store(db, cache):
    return PortalStore(db, cache)


@pytest.fixture
def client(cache, store):
    app = create_app(cache=cache, store=store)
    app.testing = True
    return app.test_client()
