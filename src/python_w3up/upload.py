"""Default upload pipeline.

Content is stored as whole blobs, one shard per blob, addressed by SHA-256.
Each stored shard is reported to ``options.on_shard_stored`` before the next
one is stored, and before the upload is registered with ``upload/add``.
"""

import logging
from typing import IO, Iterable, List, Union

from .capability import store
from .capability import upload as upload_capability
from .delegation import canonical_json
from .types import ContentId, FileLike, InvocationConfig, ShardMeta, UploadOptions

logger = logging.getLogger(__name__)

BlobLike = Union[bytes, bytearray, IO[bytes]]


def _read(content: BlobLike) -> bytes:
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if hasattr(content, "read"):
        return content.read()
    raise TypeError(f"Expected bytes or a binary file object, got {type(content).__name__}")


def _normalize_name(name: str) -> str:
    parts = [p for p in name.replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        raise ValueError(f"Invalid file name: {name!r}")
    return "/".join(parts)


async def _store_shard(conf: InvocationConfig, data: bytes, options: UploadOptions) -> ShardMeta:
    if options.connection is None:
        raise ValueError("UploadOptions.connection is required")
    cid = await store.add(conf, data, options.connection)
    shard = ShardMeta(cid=cid, size=len(data))
    logger.debug("shard stored cid=%s size=%d", cid, shard.size)
    if options.on_shard_stored:
        options.on_shard_stored(shard)
    return shard


async def _register(conf: InvocationConfig, root: ContentId, shards: List[ContentId], options: UploadOptions) -> None:
    await upload_capability.add(conf, root, shards, options.connection)
    logger.info("upload registered root=%s shards=%d", root, len(shards))


async def upload_file(conf: InvocationConfig, file: BlobLike, options: UploadOptions) -> ContentId:
    """Store a single file and return its root CID."""
    shard = await _store_shard(conf, _read(file), options)
    await _register(conf, shard.cid, [shard.cid], options)
    return shard.cid


async def upload_directory(conf: InvocationConfig, files: Iterable[FileLike], options: UploadOptions) -> ContentId:
    """Store files in order, then a manifest mapping their paths to CIDs.

    The manifest is the last shard and its CID is the root.
    """
    files = list(files)
    names = [_normalize_name(f.name) for f in files]
    if len(set(names)) != len(names):
        raise ValueError("Duplicate file names in directory upload")

    entries = []
    shards: List[ContentId] = []
    for name, f in zip(names, files):
        shard = await _store_shard(conf, _read(f.data), options)
        entries.append({"name": name, "cid": shard.cid, "size": shard.size})
        shards.append(shard.cid)

    manifest = await _store_shard(conf, canonical_json({"entries": entries}), options)
    shards.append(manifest.cid)
    await _register(conf, manifest.cid, shards, options)
    return manifest.cid


async def upload_car(conf: InvocationConfig, car: BlobLike, options: UploadOptions) -> ContentId:
    """Store a pre-built CAR as one shard and register it under ``options.root_cid`` (or the shard CID)."""
    shard = await _store_shard(conf, _read(car), options)
    root = options.root_cid or shard.cid
    await _register(conf, root, [shard.cid], options)
    return root
