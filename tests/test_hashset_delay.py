from discovery.hashset_delay import DEFAULT_DELAY, HashSetDelay


class FakeClock:
    def __init__(self):
        self.now = 500.0

    def __call__(self):
        return self.now


def make(timeout=5.0):
    clock = FakeClock()
    return HashSetDelay(timeout, clock=clock), clock


def test_default_timeout_matches_source():
    assert HashSetDelay().default_entry_timeout == DEFAULT_DELAY == 30


def test_insert_and_contains():
    delay, _ = make()
    delay.insert("a")
    assert "a" in delay
    assert "b" not in delay
    assert len(delay) == 1


def test_nothing_expires_early():
    delay, clock = make()
    delay.insert("a")
    clock.now += 4.9
    assert delay.pop_expired() == []
    assert "a" in delay


def test_expired_entries_are_removed_in_order():
    delay, clock = make()
    delay.insert_at("late", 3)
    delay.insert_at("early", 1)
    clock.now += 5
    assert delay.pop_expired() == ["early", "late"]
    assert len(delay) == 0
    assert delay.pop_expired() == []


def test_reinsert_resets_timeout():
    delay, clock = make()
    delay.insert("a")
    clock.now += 4
    delay.insert("a")
    clock.now += 4
    assert delay.pop_expired() == []
    assert len(delay) == 1
    clock.now += 1
    assert delay.pop_expired() == ["a"]


def test_update_timeout():
    delay, clock = make()
    assert delay.update_timeout("missing", 10) is False
    delay.insert("a")
    assert delay.update_timeout("a", 10) is True
    assert delay.next_expiry() == clock.now + 10


def test_remove():
    delay, clock = make()
    delay.insert("a")
    assert delay.remove("a") is True
    assert delay.remove("a") is False
    clock.now += 100
    assert delay.pop_expired() == []


def test_clear():
    delay, _ = make()
    delay.insert("a")
    delay.insert("b")
    delay.clear()
    assert len(delay) == 0
    assert delay.next_expiry() is None


def test_next_expiry_is_earliest():
    delay, clock = make()
    delay.insert_at("a", 7)
    delay.insert_at("b", 2)
    assert delay.next_expiry() == clock.now + 2
    delay.remove("b")
    assert delay.next_expiry() == clock.now + 7


def test_iter_lists_keys():
    delay, _ = make()
    delay.insert(1)
    delay.insert(2)
    assert sorted(delay) == [1, 2]