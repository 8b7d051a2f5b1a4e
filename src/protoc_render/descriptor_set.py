from __future__ import annotations

import logging
from pathlib import Path

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError

from protoc_render.errors import DescriptorSetError

logger = logging.getLogger(__name__)


def load_descriptor_set(path: Path) -> descriptor_pb2.FileDescriptorSet:
    """Read a binary ``FileDescriptorSet`` as written by ``protoc --descriptor_set_out``."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise DescriptorSetError(f"Failed to read descriptor set: {path.as_posix()}") from e
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    try:
        descriptor_set.ParseFromString(data)
    except DecodeError as e:
        raise DescriptorSetError(f"Failed to decode descriptor set: {path.as_posix()}") from e
    logger.debug("Loaded %d file(s) from %s", len(descriptor_set.file), path.as_posix())
    return descriptor_set

