from fete_api.ratelimit import InMemoryRateLimitStore, RateLimiter, Window


class Clock:
    def __init__(self, start=1_000.0):
        self.now = start

    def __call__(self):
        return self.now


def test_fourth_hit_in_window_is_rejected():
    clock = Clock()
    limiter = RateLimiter(InMemoryRateLimitStore(), max_count=3, window=3600, clock=clock)
    assert [limiter.hit("1.2.3.4") for _ in range(3)] == [True, True, True]
    clock.now += 10
    assert limiter.hit("1.2.3.4") is False
    assert limiter.hit("5.6.7.8") is True


def test_window_elapses():
    clock = Clock()
    limiter = RateLimiter(InMemoryRateLimitStore(), max_count=3, window=3600, clock=clock)
    first = clock.now
    for _ in range(3):
        limiter.hit("1.2.3.4")
        clock.now += 100
    assert limiter.hit("1.2.3.4") is False
    # The window runs from the first counted hit.
    clock.now = first + 3600
    assert limiter.hit("1.2.3.4") is True
    assert limiter.store.get("1.2.3.4") == Window(count=1, window_start=clock.now)


def test_store_is_swappable():
    class RecordingStore:
        def __init__(self):
            self.data = {}
            self.writes = []

        def get(self, address):
            return self.data.get(address)

        def put(self, address, window):
            self.writes.append(address)
            self.data[address] = window

    store = RecordingStore()
    limiter = RateLimiter(store, max_count=1, window=60, clock=Clock())
    assert limiter.hit("a")
    assert not limiter.hit("a")
    assert store.writes == ["a"]
