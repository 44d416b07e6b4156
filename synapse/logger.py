"""
Логирование matching engine.

Два формата: JSON (одна запись - одна строка, для сбора логов в production)
и человекочитаемый для локального запуска CLI. Контекст матча (user_id,
project_id, ...) передается через extra или MatchLogAdapter и выводится
отдельно от текста сообщения.

Логи всегда пишутся в stderr: stdout CLI занят JSON результатами.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from synapse.config import Settings

# Атрибуты, которые есть у любой LogRecord (включая выставляемые Formatter.format)
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord('', logging.INFO, '', 0, '', (), None))
) | {'message', 'asctime'}

NOISY_LOGGERS = ('sqlalchemy.engine', 'sqlalchemy.pool', 'aiosqlite', 'asyncpg', 'asyncio')


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Поля, добавленные через extra."""
    return {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter.

    {"ts": "2024-11-24T12:34:56.789000+00:00", "level": "INFO",
     "logger": "synapse.service", "message": "...", "where": "service:148",
     "context": {"user_id": 42, "project_id": 7}}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            'ts': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'where': f'{record.module}:{record.lineno}',
        }

        context = record_context(record)
        if context:
            payload['context'] = context

        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    2024-11-24 12:34:56 INFO     synapse.service: 🎯 Score 72/100 [user_id=42 project_id=7]
    """

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s %(levelname)-8s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = record_context(record)
        if context:
            line += ' [' + ' '.join(f'{key}={value}' for key, value in context.items()) + ']'
        return line


def setup_logging(
    level: Union[str, int, None] = None,
    use_json: Optional[bool] = None,
    log_file: Union[str, Path, None] = None
) -> None:
    """
    Настройка root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR (по умолчанию LOG_LEVEL)
        use_json: JSON формат (по умолчанию LOG_FORMAT == 'json')
        log_file: Дополнительный файл логов (по умолчанию LOG_FILE)
    """
    if level is None:
        level = Settings.LOG_LEVEL
    if use_json is None:
        use_json = Settings.LOG_FORMAT.lower() == 'json'
    if log_file is None:
        log_file = Settings.LOG_FILE

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = StructuredFormatter() if use_json else HumanReadableFormatter()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class MatchLogAdapter(logging.LoggerAdapter):
    """
    Добавляет контекст матча к каждой записи.

    Example:
        log = MatchLogAdapter(logger, {'user_id': 42, 'project_id': 7})
        log.info("Score calculated")
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs['extra'] = {**self.extra, **(kwargs.get('extra') or {})}
        return msg, kwargs


__all__ = [
    'setup_logging',
    'MatchLogAdapter',
    'StructuredFormatter',
    'HumanReadableFormatter',
    'record_context',
]
