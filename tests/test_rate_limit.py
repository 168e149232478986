from bookledger.core.config import settings


class FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.ops = []

    def incr(self, key):
        self.ops.append(("incr", key))

    def expire(self, key, seconds, nx=False):
        self.ops.append(("expire", key))

    def execute(self):
        results = []
        for op, key in self.ops:
            if op == "incr":
                self.redis.counts[key] = self.redis.counts.get(key, 0) + 1
                results.append(self.redis.counts[key])
            else:
                results.append(True)
        return results


class FakeRedis:
    def __init__(self):
        self.counts = {}

    def pipeline(self):
        return FakePipeline(self)


class BrokenPipeline:
    def incr(self, key):
        pass

    def expire(self, key, seconds, nx=False):
        pass

    def execute(self):
        raise ConnectionError("redis down")


def _return_missing(client, headers):
    return client.post("/v1/library/return", json={"borrowing_id": "missing"}, headers=headers)


def test_ledger_writes_are_limited_per_user(client, make_user, auth_headers, monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr("bookledger.api.rate_limit.get_redis", lambda: fake)
    monkeypatch.setattr(settings, "rate_limit_ledger_per_window", 2)
    monkeypatch.setattr(settings, "rate_limit_window_seconds", 60)
    monkeypatch.setattr("bookledger.api.rate_limit._now", lambda: 1_000_040)
    headers = auth_headers(make_user())

    assert _return_missing(client, headers).status_code == 404
    assert _return_missing(client, headers).status_code == 404

    resp = _return_missing(client, headers)
    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "40"

    other = auth_headers(make_user())
    assert _return_missing(client, other).status_code == 404


def test_limiter_fails_open_when_redis_errors(client, make_user, auth_headers, monkeypatch):
    class Broken:
        def pipeline(self):
            return BrokenPipeline()

    monkeypatch.setattr("bookledger.api.rate_limit.get_redis", lambda: Broken())
    monkeypatch.setattr(settings, "rate_limit_ledger_per_window", 0)
    headers = auth_headers(make_user())

    assert _return_missing(client, headers).status_code == 404
