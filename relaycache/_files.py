from __future__ import annotations

import anyio


class AsyncBaseFileManager:
    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    async def read_from(self, path: str) -> str:
        raise NotImplementedError()

    async def append_to(self, path: str, data: str) -> None:
        raise NotImplementedError()


class AsyncFileManager(AsyncBaseFileManager):
    async def read_from(self, path: str) -> str:
        async with await anyio.open_file(path, "rt", encoding=self.encoding) as f:
            return await f.read()

    async def append_to(self, path: str, data: str) -> None:
        await anyio.Path(path).parent.mkdir(parents=True, exist_ok=True)
        async with await anyio.open_file(path, "at", encoding=self.encoding) as f:
            await f.write(data)
