"""
Match History Recorder.

Append-only запись рассчитанных матчей для аналитики.
Запись истории - best-effort: ошибка сохранения логируется
и никогда не ломает скоринг, который породил MatchScore.
"""

import asyncio
import logging
from typing import Optional, Protocol, Set, Union

from synapse.matching.models import HistoryAction, MatchHistoryEntry, MatchScore

logger = logging.getLogger(__name__)


class HistoryStore(Protocol):
    """Хранилище истории матчинга."""

    async def save_matching_history(self, entry: MatchHistoryEntry) -> int:
        ...


def parse_action(action: Union[HistoryAction, str, None]) -> HistoryAction:
    """Строка действия → HistoryAction; неизвестное действие → none."""
    if isinstance(action, HistoryAction):
        return action
    if action is None:
        return HistoryAction.NONE
    try:
        return HistoryAction(str(action).strip().lower())
    except ValueError:
        logger.warning(f"⚠️ Неизвестное действие '{action}', записывается как 'none'")
        return HistoryAction.NONE


class MatchHistoryRecorder:
    """
    Запись истории матчинга.

    Example:
        recorder = MatchHistoryRecorder(db)
        recorder.record_in_background(match, 'viewed')   # не ждем
        ...
        await recorder.drain()                           # при остановке
    """

    def __init__(self, store: HistoryStore):
        self.store = store
        self._pending: Set[asyncio.Task] = set()
        self.stats = {
            'recorded': 0,
            'failed': 0,
        }

    async def record(
        self,
        match: MatchScore,
        action: Union[HistoryAction, str, None] = HistoryAction.NONE
    ) -> bool:
        """
        Сохранить матч в историю.

        Returns:
            True если запись сохранена, False при ошибке (исключение не пробрасывается)
        """
        entry = MatchHistoryEntry.from_match(match, parse_action(action))

        try:
            await self.store.save_matching_history(entry)
        except Exception as e:
            self.stats['failed'] += 1
            logger.error(
                f"❌ Не удалось сохранить историю матчинга "
                f"(user={match.user_id}, project={match.project_id}): {e}",
                exc_info=True
            )
            return False

        self.stats['recorded'] += 1
        logger.debug(
            f"History recorded: user={match.user_id} project={match.project_id} "
            f"score={match.total_score} action={entry.action.value}"
        )
        return True

    def record_in_background(
        self,
        match: MatchScore,
        action: Union[HistoryAction, str, None] = HistoryAction.NONE
    ) -> asyncio.Task:
        """
        Fire-and-forget запись: вызывающий код не ждет результата.

        Ссылка на задачу хранится до ее завершения, иначе event loop
        может собрать ее сборщиком мусора.
        """
        task = asyncio.create_task(self.record(match, action))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Дождаться всех фоновых записей (остановка сервиса, тесты)."""
        if not self._pending:
            return
        pending = list(self._pending)
        logger.debug(f"Ожидание {len(pending)} фоновых записей истории...")
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        if not_done:
            logger.warning(f"⚠️ {len(not_done)} записей истории не завершились за {timeout}s")
