"""
待办列表：新增（置顶）、切换完成状态、删除。
每次操作都先读取最新列表再整体写回。
"""

import logging
import time
import uuid
from typing import Callable, List, Optional

from nexus.models import StorageKey, Todo
from nexus.store import TypedStore

logger = logging.getLogger(__name__)

CATEGORIES = ("work", "personal", "urgent", "later")


class TodoList:

    def __init__(self, store: TypedStore, clock: Callable[[], float] = time.time):
        self._store = store
        self._clock = clock

    async def items(self) -> List[Todo]:
        return await self._store.get(StorageKey.TODOS)

    async def add(self, text: str, category: Optional[str] = None) -> Optional[Todo]:
        """新增待办并放在列表最前；空文本忽略。"""
        text = text.strip()
        if not text:
            return None
        if category is not None and category not in CATEGORIES:
            raise ValueError(f"未知分类: {category}")

        todo = Todo(id=uuid.uuid4().hex, text=text, category=category, created_at=self._clock())
        todos = await self.items()
        await self._store.set(StorageKey.TODOS, [todo, *todos])
        return todo

    async def toggle(self, todo_id: str) -> bool:
        todos = await self.items()
        found = False
        updated = []
        for todo in todos:
            if todo.id == todo_id:
                todo = todo.model_copy(update={"completed": not todo.completed})
                found = True
            updated.append(todo)
        if found:
            await self._store.set(StorageKey.TODOS, updated)
        return found

    async def delete(self, todo_id: str) -> bool:
        todos = await self.items()
        remaining = [t for t in todos if t.id != todo_id]
        if len(remaining) == len(todos):
            return False
        await self._store.set(StorageKey.TODOS, remaining)
        return True

    async def counts(self) -> tuple[int, int]:
        """(已完成, 总数)"""
        todos = await self.items()
        return sum(1 for t in todos if t.completed), len(todos)
