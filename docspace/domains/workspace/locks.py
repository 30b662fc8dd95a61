import asyncio
import uuid
import weakref
from contextlib import asynccontextmanager


class DocumentLocks:
    """Критические секции по документу.

    Чтение-слияние-запись содержимого одного документа выполняется строго
    последовательно; разные документы не блокируют друг друга.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, document_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, document_id: uuid.UUID):
        lock = self.lock_for(document_id)
        async with lock:
            yield


# Общий для процесса реестр блокировок
document_locks = DocumentLocks()
