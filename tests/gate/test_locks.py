"""Tests for per-identity locking."""

import threading
import time

from recspine.core.models import CanonicalIdentity
from recspine.gate.locks import IdentityLockRegistry, lock_keys

IDENTITY = CanonicalIdentity(
    compact="hKx8dCgYQhmvEjyH2m1Dqw==",
    legacy_hex="84ac7c7428184219af123c87da6d43ab",
    legacy_hex_dashed="84ac7c74-2818-4219-af12-3c87da6d43ab",
)


class TestLockKeys:
    def test_identity_and_fingerprint(self):
        assert lock_keys(IDENTITY, "abcd") == ["fp:abcd", f"id:{IDENTITY.compact}"]

    def test_fingerprint_only(self):
        assert lock_keys(None, "abcd") == ["fp:abcd"]

    def test_nothing(self):
        assert lock_keys(None, None) == []


class TestIdentityLockRegistry:
    def test_entries_released_after_use(self):
        registry = IdentityLockRegistry()
        with registry.hold("id:a", "fp:b"):
            assert registry.active_keys() == ["fp:b", "id:a"]
        assert registry.active_keys() == []

    def test_duplicate_keys_held_once(self):
        registry = IdentityLockRegistry()
        with registry.hold("id:a", "id:a"):
            assert registry.active_keys() == ["id:a"]

    def test_released_on_exception(self):
        registry = IdentityLockRegistry()
        try:
            with registry.hold("id:a"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert registry.active_keys() == []
        with registry.hold("id:a"):
            pass

    def test_same_key_serializes(self):
        registry = IdentityLockRegistry()
        inside = 0
        max_inside = 0
        guard = threading.Lock()

        def worker():
            nonlocal inside, max_inside
            with registry.hold("id:a"):
                with guard:
                    inside += 1
                    max_inside = max(max_inside, inside)
                time.sleep(0.01)
                with guard:
                    inside -= 1

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert max_inside == 1
        assert registry.active_keys() == []

    def test_shared_fingerprint_serializes_distinct_identities(self):
        """A rotated identifier still contends with the original via its fingerprint."""
        registry = IdentityLockRegistry()
        first_in = threading.Event()
        release_first = threading.Event()
        second_in = threading.Event()

        def first():
            with registry.hold("id:one", "fp:same"):
                first_in.set()
                release_first.wait(2)

        def second():
            first_in.wait(2)
            with registry.hold("id:two", "fp:same"):
                second_in.set()

        t1 = threading.Thread(target=first)
        t2 = threading.Thread(target=second)
        t1.start()
        t2.start()
        first_in.wait(2)
        assert not second_in.wait(0.1)
        release_first.set()
        t1.join()
        t2.join()
        assert second_in.is_set()

    def test_distinct_keys_do_not_block(self):
        registry = IdentityLockRegistry()
        with registry.hold("id:a"):
            done = threading.Event()

            def other():
                with registry.hold("id:b"):
                    done.set()

            t = threading.Thread(target=other)
            t.start()
            assert done.wait(1)
            t.join()
