import fakeredis
import pytest


@pytest.fixture(autouse=True)
def flush_fake_redis():
    """FakeRedis instances with default connection args share one server."""
    fakeredis.FakeRedis().flushall()
    yield
    fakeredis.FakeRedis().flushall()
