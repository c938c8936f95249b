"""Share the current space with another agent.

The owner writes a delegation archive; the other agent imports it.

    python share_space.py export <audience-did> delegation.bin
    W3UP_AGENT=other.json python share_space.py import delegation.bin
"""
import asyncio
import os
import sys

from python_w3up import AgentMeta, Delegation, ServiceConf, create_client

AGENT_PATH = os.getenv('W3UP_AGENT', 'agent.json')


async def export(audience, out_path):
    client = create_client(AGENT_PATH, service_conf=ServiceConf.from_env())
    delegation = await client.create_delegation(
        audience, ['store/*', 'upload/*'], audience_meta=AgentMeta('laptop', 'device')
    )
    with open(out_path, 'wb') as f:
        f.write(delegation.archive())
    print(f"Wrote delegation {delegation.cid} for {audience}")


async def import_(in_path):
    client = create_client(AGENT_PATH, service_conf=ServiceConf.from_env())
    with open(in_path, 'rb') as f:
        space = await client.add_space(Delegation.extract(f.read()))
    await client.set_current_space(space.did)
    print(f"Imported space {space.did} ({space.name})")
    for proof in client.proofs(['store/add']):
        print(f"  proof {proof.cid} from {proof.issuer}")


if __name__ == '__main__':
    if sys.argv[1] == 'export':
        asyncio.run(export(sys.argv[2], sys.argv[3]))
    else:
        asyncio.run(import_(sys.argv[2]))
