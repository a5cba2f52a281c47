import typing as tp

import anyio
import pytest

from relaycache import BlockListGuard, BlockListStore


class InMemoryBlockListStore(BlockListStore):
    def __init__(self, lines: tp.Optional[tp.List[str]] = None) -> None:
        self.lines = list(lines or [])

    async def read_lines(self) -> tp.List[str]:
        return list(self.lines)

    async def append_line(self, line: str) -> None:
        self.lines.append(line)


class RecordingStream:
    """Collects everything a response writer sends."""

    def __init__(self) -> None:
        self.data = b""
        self.closed = False

    async def send(self, item: bytes) -> None:
        if self.closed:
            raise anyio.ClosedResourceError
        self.data += item

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def make_guard() -> tp.Callable[..., BlockListGuard]:
    def factory(*entries: str) -> BlockListGuard:
        return BlockListGuard(InMemoryBlockListStore(list(entries)))

    return factory


@pytest.fixture
def recording_stream() -> RecordingStream:
    return RecordingStream()
