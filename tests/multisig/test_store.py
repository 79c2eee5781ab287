from __future__ import annotations

import pytest
import pytest_asyncio

from chedda_agent.errors import DuplicateMultisigError
from chedda_agent.multisig import MultisigRecord, SQLiteMultisigStore

AGENT = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
USER = "0x3333333333333333333333333333333333333333"


def _record(multisig_address: str = "0x4444444444444444444444444444444444444444") -> MultisigRecord:
    return MultisigRecord(
        multisig_address=multisig_address,
        agent_id="agent-1",
        agent_address=AGENT,
        user_address=USER,
        coordinator_address="0x2222222222222222222222222222222222222222",
        threshold=3,
    )


@pytest_asyncio.fixture
async def store(tmp_path):
    async with SQLiteMultisigStore(tmp_path / "registry" / "multisig.db") as s:
        yield s


@pytest.mark.asyncio
async def test_missing_pair_returns_none(store):
    assert await store.find_by_pair(AGENT, USER) is None


@pytest.mark.asyncio
async def test_insert_then_find_is_case_insensitive(store):
    await store.insert(_record())

    found = await store.find_by_pair(AGENT.upper().replace("0X", "0x"), USER)

    assert found is not None
    assert found.multisig_address == "0x4444444444444444444444444444444444444444"
    assert found.agent_address == AGENT.lower()
    assert found.agent_id == "agent-1"
    assert found.threshold == 3
    assert len(found.owners) == 3


@pytest.mark.asyncio
async def test_second_insert_for_pair_is_rejected(store):
    await store.insert(_record())

    with pytest.raises(DuplicateMultisigError):
        await store.insert(_record("0x5555555555555555555555555555555555555555"))

    found = await store.find_by_pair(AGENT, USER)
    assert found.multisig_address == "0x4444444444444444444444444444444444444444"


@pytest.mark.asyncio
async def test_pair_is_directional(store):
    await store.insert(_record())

    assert await store.find_by_pair(USER, AGENT) is None


@pytest.mark.asyncio
async def test_records_survive_reconnect(tmp_path):
    path = tmp_path / "multisig.db"
    async with SQLiteMultisigStore(path) as first:
        await first.insert(_record())

    async with SQLiteMultisigStore(path) as second:
        assert await second.find_by_pair(AGENT, USER) is not None
