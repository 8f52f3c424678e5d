"""Tests for the challenge key layout and the in-memory challenge store."""

from __future__ import annotations

import asyncio

import pytest

from authcore.challenges import (
    ChallengePurpose,
    IChallengeStore,
    InMemoryChallengeStore,
    discoverable_challenge_key,
    user_challenge_key,
)


def test_key_layout() -> None:
    assert (
        user_challenge_key(ChallengePurpose.REGISTRATION, "u1")
        == "challenge:registration:u1"
    )
    assert (
        user_challenge_key(ChallengePurpose.AUTHENTICATION, "u1")
        == "challenge:authentication:u1"
    )
    assert discoverable_challenge_key("abc") == "challenge:discoverable:abc"


def test_in_memory_store_satisfies_protocol(challenge_store) -> None:
    assert isinstance(challenge_store, IChallengeStore)


@pytest.mark.asyncio
class TestInMemoryChallengeStore:
    async def test_get_and_delete_is_single_use(self, challenge_store) -> None:
        await challenge_store.put("k", "v", 60)

        assert await challenge_store.get_and_delete("k") == "v"
        assert await challenge_store.get_and_delete("k") is None

    async def test_missing_key(self, challenge_store) -> None:
        assert await challenge_store.get_and_delete("absent") is None

    async def test_put_overwrites(self, challenge_store) -> None:
        await challenge_store.put("k", "old", 60)
        await challenge_store.put("k", "new", 60)

        assert await challenge_store.get_and_delete("k") == "new"

    async def test_expired_value_is_gone(self, challenge_store, monotonic) -> None:
        await challenge_store.put("k", "v", 300)

        monotonic.value += 300

        assert await challenge_store.get_and_delete("k") is None
        assert len(challenge_store) == 0

    async def test_put_purges_abandoned_entries(
        self, challenge_store, monotonic
    ) -> None:
        await challenge_store.put("challenge:discoverable:a", "a", 300)
        await challenge_store.put("challenge:discoverable:b", "b", 600)
        monotonic.value += 300

        await challenge_store.put("challenge:discoverable:c", "c", 300)

        assert len(challenge_store) == 2
        assert await challenge_store.get_and_delete("challenge:discoverable:b") == "b"
        assert await challenge_store.get_and_delete("challenge:discoverable:c") == "c"

    async def test_value_just_before_expiry(self, challenge_store, monotonic) -> None:
        await challenge_store.put("k", "v", 300)
        monotonic.value += 299.5
        assert await challenge_store.get_and_delete("k") == "v"

    async def test_racing_consumers_get_one_value(self, challenge_store) -> None:
        await challenge_store.put("k", "v", 60)

        results = await asyncio.gather(
            *(challenge_store.get_and_delete("k") for _ in range(10))
        )

        assert results.count("v") == 1

    async def test_clear_all(self) -> None:
        store = InMemoryChallengeStore()
        await store.put("a", "1", 60)
        store.clear_all()
        assert len(store) == 0
