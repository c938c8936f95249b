"""Tests for the voucher redeem/claim registration handshake."""

import asyncio

import pytest

from python_w3up import Client
from python_w3up.delegation import delegate
from python_w3up.did import Signer
from python_w3up.errors import (
    NoCurrentSpaceError,
    RegistrationCancelled,
    SpaceAlreadyRegisteredError,
)


def claim_for(service, agent):
    """A voucher/claim delegation as the service would push it to the agent."""
    service_key = Signer.generate()
    return delegate(service_key, agent.did(), [{"can": "voucher/claim", "with": service.did}])


async def _select_space(client):
    space = await client.create_space("docs")
    await client.set_current_space(space.did)
    return space


async def _wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_register_space(client, agent, service):
    """Test the full handshake: redeem, wait for claim, claim with recovery delegation."""
    space = await _select_space(client)
    claim = claim_for(service, agent)
    service.claims[space.did] = claim.archive()

    await client.register_space("a@b.com")

    assert service.abilities() == ["voucher/redeem", "voucher/claim"]
    redeem, claim_inv = service.invocations
    assert redeem.capabilities[0]["nb"] == {
        "product": "product:free", "identity": "mailto:a@b.com", "space": space.did
    }
    assert redeem.capabilities[0]["with"] == agent.did()
    proofs = claim_inv.proof_delegations()
    assert proofs[0].cid == claim.cid
    recovery = proofs[1]
    assert recovery.issuer == space.did
    assert recovery.audience == service.did
    assert recovery.capabilities == [{"can": "*", "with": space.did}]
    assert recovery.verify()
    assert client.current_space().registered


@pytest.mark.asyncio
async def test_register_space_waits_for_claim(client, agent, service):
    """Test that registration suspends until the claim shows up."""
    space = await _select_space(client)

    task = asyncio.ensure_future(client.register_space("a@b.com"))
    await _wait_for(lambda: service.claim_polls >= 3)
    assert not task.done()
    assert service.abilities() == ["voucher/redeem"]

    service.claims[space.did] = claim_for(service, agent).archive()
    await asyncio.wait_for(task, timeout=2.0)

    assert service.abilities() == ["voucher/redeem", "voucher/claim"]


@pytest.mark.asyncio
async def test_register_space_cancelled(client, service):
    """Test that setting the signal aborts the wait and no space delegation is issued."""
    await _select_space(client)
    signal = asyncio.Event()

    task = asyncio.ensure_future(client.register_space("a@b.com", signal=signal))
    await _wait_for(lambda: service.claim_polls >= 1)
    signal.set()

    with pytest.raises(RegistrationCancelled):
        await asyncio.wait_for(task, timeout=2.0)

    assert service.abilities() == ["voucher/redeem"]
    assert client.delegations() == []
    assert not client.current_space().registered


@pytest.mark.asyncio
async def test_register_space_signal_already_set(client, service):
    await _select_space(client)
    signal = asyncio.Event()
    signal.set()

    with pytest.raises(RegistrationCancelled):
        await client.register_space("a@b.com", signal=signal)

    assert service.invocations == []


@pytest.mark.asyncio
async def test_register_space_task_cancellation(client, service):
    """Test that cancelling the calling task stops the claim wait."""
    await _select_space(client)

    task = asyncio.ensure_future(client.register_space("a@b.com"))
    await _wait_for(lambda: service.claim_polls >= 1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    polls = service.claim_polls
    await asyncio.sleep(0.05)
    assert service.claim_polls == polls


@pytest.mark.asyncio
async def test_register_space_requires_current_space(client, service):
    with pytest.raises(NoCurrentSpaceError):
        await client.register_space("a@b.com")

    assert service.invocations == []


@pytest.mark.asyncio
async def test_register_space_twice(client, agent, service):
    space = await _select_space(client)
    service.claims[space.did] = claim_for(service, agent).archive()
    await client.register_space("a@b.com")

    with pytest.raises(SpaceAlreadyRegisteredError):
        await client.register_space("a@b.com")


@pytest.mark.asyncio
async def test_register_imported_space_redelegates(client, new_agent, service_conf, service):
    """Test that without the space key the agent re-delegates its own proof to the service."""
    owner = await _select_space(client)
    friend_agent = new_agent()
    friend = Client(friend_agent, service_conf)
    shared = await client.create_delegation(friend.agent(), ["*"])
    await friend.add_space(shared)
    await friend.set_current_space(owner.did)
    friend_agent.spaces[owner.did]["isRegistered"] = False
    service.claims[owner.did] = claim_for(service, friend_agent).archive()

    await friend.register_space("friend@b.com")

    recovery = service.invocations[-1].proof_delegations()[1]
    assert recovery.issuer == friend.agent().did()
    assert recovery.audience == service.did
    assert recovery.proofs == [shared.cid]
    assert [d.meta["audience"] for d in friend.delegations()] == [{"name": "w3up", "type": "service"}]
