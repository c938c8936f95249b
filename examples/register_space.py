"""Register the current space with the service.

Waits for the voucher claim (confirm the email that the service sends), and
gives up after a timeout by setting the abort signal.
"""
import asyncio
import os
import sys

from python_w3up import RegistrationCancelled, ServiceConf, create_client

AGENT_PATH = os.getenv('W3UP_AGENT', 'agent.json')
TIMEOUT_SECONDS = 15 * 60


async def main(email):
    client = create_client(AGENT_PATH, service_conf=ServiceConf.from_env())
    space = client.current_space()
    if space is None:
        space = await client.create_space('examples')
        await client.set_current_space(space.did)

    signal = asyncio.Event()
    asyncio.get_running_loop().call_later(TIMEOUT_SECONDS, signal.set)

    print(f"Registering {space.did} for {email}, check your inbox...")
    try:
        await client.register_space(email, signal=signal)
    except RegistrationCancelled:
        print("Gave up waiting for the voucher claim")
        return
    print("Space registered")


if __name__ == '__main__':
    asyncio.run(main(sys.argv[1]))
