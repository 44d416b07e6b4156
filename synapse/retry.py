"""
Повторные попытки чтения из БД.

Снимки пользователя и проектов читаются перед каждым скорингом. Временные
ошибки соединения (обрыв, рестарт PostgreSQL, занятая SQLite) повторяются
с экспоненциальной задержкой; остальные ошибки пробрасываются сразу.
Когда попытки исчерпаны, последняя ошибка уходит вызывающему коду.
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Iterator, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class RetryPolicy:
    """
    Параметры повторов.

    Delays (attempts=3, initial_delay=0.5, backoff_factor=2):
        Attempt 1: сразу
        Attempt 2: через 0.5s
        Attempt 3: через 1.0s
    """
    attempts: int = 3
    initial_delay: float = 0.5
    backoff_factor: float = 2.0
    max_delay: float = 5.0

    def delays(self) -> Iterator[float]:
        """Задержки перед второй и последующими попытками."""
        delay = self.initial_delay
        for _ in range(max(0, self.attempts - 1)):
            yield min(delay, self.max_delay)
            delay *= self.backoff_factor


def is_transient_error(error: BaseException) -> bool:
    """Ошибка, после которой имеет смысл повторить запрос."""
    if isinstance(error, (OperationalError, InterfaceError)):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    return isinstance(error, (ConnectionError, asyncio.TimeoutError))


def retry_transient(
    policy: Optional[RetryPolicy] = None,
    is_retryable: Callable[[BaseException], bool] = is_transient_error
):
    """
    Декоратор async функции: повтор при временных ошибках.

    Example:
        @retry_transient(RetryPolicy(attempts=5))
        async def get_user_profile(self, user_id):
            ...
    """
    policy = policy or RetryPolicy()

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            delays = policy.delays()
            attempt = 1

            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable(e):
                        raise

                    delay = next(delays, None)
                    if delay is None:
                        logger.error(f"❌ {func.__name__}: БД недоступна после {attempt} попыток: {e}")
                        raise

                    logger.warning(
                        f"⚠️ {func.__name__}: попытка {attempt}/{policy.attempts} не удалась ({e}), "
                        f"повтор через {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper
    return decorator


# Чтение снимков в SynapseDB
db_retry = retry_transient(RetryPolicy())
