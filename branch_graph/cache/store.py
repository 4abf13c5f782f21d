import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Workspace-scoped persistent storage for JSON-compatible values."""

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})

    async def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """All keys in a single JSON document, rewritten on every change.

    File reads and writes run in the default executor so a large document
    does not block the event loop.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            loaded = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning(f"State file {self.path} is not valid JSON, starting empty: {e}")
            return {}
        if not isinstance(loaded, dict):
            logger.warning(f"State file {self.path} does not hold an object, starting empty")
            return {}
        return loaded

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp_path, self.path)

    async def _load(self) -> Dict[str, Any]:
        if self._data is None:
            loop = asyncio.get_running_loop()
            # A bad file is replaced by the next write
            self._data = await loop.run_in_executor(None, self._read)
        return self._data

    async def _flush(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, self._data)

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._lock:
            return (await self._load()).get(key, default)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            (await self._load())[key] = value
            await self._flush()

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await self._load()
            if key in data:
                del data[key]
                await self._flush()
