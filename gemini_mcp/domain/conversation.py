from threading import Lock
from typing import Dict, Iterable, List

from .models import Message


class ConversationStore:
    """conversation_id -> 有序消息历史。

    仅保存在进程内存中，不做淘汰；由服务对象持有并注入到工具处理器。
    """

    def __init__(self) -> None:
        self._histories: Dict[str, List[Message]] = {}
        self._lock = Lock()

    def append(self, conversation_id: str, messages: Iterable[Message]) -> None:
        with self._lock:
            history = self._histories.setdefault(conversation_id, [])
            history.extend(messages)

    def get_history(self, conversation_id: str) -> List[Message]:
        with self._lock:
            return list(self._histories.get(conversation_id, ()))

    def clear(self, conversation_id: str) -> None:
        with self._lock:
            self._histories.pop(conversation_id, None)

    def __contains__(self, conversation_id: object) -> bool:
        with self._lock:
            return conversation_id in self._histories

    def __len__(self) -> int:
        with self._lock:
            return len(self._histories)
