"""Upload a file and a directory to the current space.

Run once with W3UP_AGENT pointing at a fresh path, register the space, then
re-run to upload.
"""
import asyncio
import os

from python_w3up import FileLike, ServiceConf, UploadOptions, create_client

AGENT_PATH = os.getenv('W3UP_AGENT', 'agent.json')


async def main():
    client = create_client(AGENT_PATH, service_conf=ServiceConf.from_env())
    print(f"Agent: {client.agent().did()}")

    space = client.current_space()
    if space is None:
        space = await client.create_space('examples')
        await client.set_current_space(space.did)
    print(f"Space: {space.did} ({space.name})")

    def on_shard(shard):
        print(f"  stored shard {shard.cid} ({shard.size} bytes)")

    root = await client.upload_file(b'Hello from python-w3up', UploadOptions(on_shard_stored=on_shard))
    print(f"File root: {root}")

    files = [
        FileLike('index.html', b'<h1>hello</h1>'),
        FileLike('assets/style.css', b'h1 { color: teal; }'),
    ]
    root = await client.upload_directory(files, UploadOptions(on_shard_stored=on_shard))
    print(f"Directory root: {root}")


if __name__ == '__main__':
    asyncio.run(main())
