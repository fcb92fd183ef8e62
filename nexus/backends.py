"""
键值存储后端：TinyDB（扩展存储）、本地字符串存储（开发回退）和内存存储。
所有后端只负责按 key 读写完整的 JSON 值，不理解 schema。
"""

import json
import logging
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Iterable

from tinydb import Query, TinyDB

from nexus.config_loader import StorageConfig

logger = logging.getLogger(__name__)


class KeyValueBackend:
    """后端接口：get(keys) / set(items) / clear()。"""

    name = "base"

    async def get(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        """读取指定 key（None 表示全部），缺失的 key 不出现在结果中。"""
        raise NotImplementedError

    async def set(self, items: dict[str, Any]) -> None:
        """整体覆盖写入每个 key 的值。"""
        raise NotImplementedError

    async def clear(self) -> None:
        """删除所有持久化的 key。"""
        raise NotImplementedError


class TinyDBBackend(KeyValueBackend):
    """基于 TinyDB 的持久化存储，每个 key 一条文档。"""

    name = "tinydb"

    def __init__(self, db_path: str | Path):
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = TinyDB(str(db_path), indent=2, ensure_ascii=False)
        self.table = self.db.table("storage")
        logger.info(f"TinyDB 存储已打开: {db_path}")

    async def get(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        try:
            docs = self.table.all()
        except (JSONDecodeError, ValueError, OSError) as e:
            logger.warning(f"读取 TinyDB 存储失败，按空存储处理: {e}")
            return {}

        wanted = set(keys) if keys is not None else None
        result = {}
        for doc in docs:
            key = doc.get("key")
            if not isinstance(key, str) or "value" not in doc:
                continue
            if wanted is None or key in wanted:
                result[key] = doc["value"]
        return result

    async def set(self, items: dict[str, Any]) -> None:
        Entry = Query()
        for key, value in items.items():
            self.table.upsert({"key": key, "value": value}, Entry.key == key)
            logger.debug(f"[{key}] 已写入 TinyDB")

    async def clear(self) -> None:
        self.table.truncate()
        logger.info("TinyDB 存储已清空")

    def close(self):
        self.db.close()


class LocalStringBackend(KeyValueBackend):
    """
    本地字符串存储回退：一个 JSON 文件，值为 JSON 编码后的字符串，
    key 带固定命名空间前缀（如 nexus_todos）。解码失败的值视为不存在。
    """

    name = "local"

    def __init__(self, file_path: str | Path, prefix: str = "nexus_"):
        self.file_path = Path(file_path)
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix
        logger.info(f"本地字符串存储文件: {self.file_path}")

    def _load_all(self) -> dict[str, str]:
        if not self.file_path.exists():
            return {}
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (JSONDecodeError, IOError) as e:
            logger.warning(f"读取本地存储文件失败: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning("本地存储文件格式无效，按空存储处理")
            return {}
        return data

    def _save_all(self, data: dict[str, str]):
        with open(self.file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    async def get(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        stored = self._load_all()
        if keys is None:
            names = [k[len(self.prefix):] for k in stored if k.startswith(self.prefix)]
        else:
            names = list(keys)

        result = {}
        for key in names:
            raw = stored.get(self.prefix + key)
            if raw is None:
                continue
            try:
                result[key] = json.loads(raw)
            except (JSONDecodeError, TypeError) as e:
                logger.warning(f"[{key}] 本地存储值无法解码，使用默认值: {e}")
        return result

    async def set(self, items: dict[str, Any]) -> None:
        stored = self._load_all()
        for key, value in items.items():
            stored[self.prefix + key] = json.dumps(value, ensure_ascii=False)
        self._save_all(stored)

    async def clear(self) -> None:
        stored = self._load_all()
        remaining = {k: v for k, v in stored.items() if not k.startswith(self.prefix)}
        self._save_all(remaining)
        logger.info("本地字符串存储已清空")


class MemoryBackend(KeyValueBackend):
    """进程内存储，用于测试或持久化不可用时。"""

    name = "memory"

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        names = list(self._data) if keys is None else [k for k in keys if k in self._data]
        # 存 JSON 文本，读出的是独立副本
        return {k: json.loads(self._data[k]) for k in names}

    async def set(self, items: dict[str, Any]) -> None:
        for key, value in items.items():
            self._data[key] = json.dumps(value)

    async def clear(self) -> None:
        self._data.clear()


def create_backend(config: StorageConfig) -> KeyValueBackend:
    """
    按配置创建后端。存储位置无法打开时依次回退：
    tinydb -> local -> memory。
    """
    data_dir = Path(config.data_dir)
    order = ["tinydb", "local", "memory"]
    start = order.index(config.backend) if config.backend in order else 0

    for name in order[start:]:
        try:
            if name == "tinydb":
                return TinyDBBackend(data_dir / config.tinydb_file)
            if name == "local":
                return LocalStringBackend(data_dir / config.local_file, prefix=config.prefix)
            return MemoryBackend()
        except (OSError, JSONDecodeError) as e:
            logger.warning(f"存储后端 '{name}' 不可用，尝试下一个: {e}")
    return MemoryBackend()
