#!/usr/bin/env python3
"""
Synapse Matching Engine - CLI.

On-demand расчет match score и рекомендаций проектов для пользователя.
"""

import argparse
import asyncio
import json
import sys

import colorama
from colorama import Fore, Style

from database import close_database
from synapse.config import Settings, get_limit, is_synapse_enabled
from synapse.database import get_synapse_db
from synapse.logger import setup_logging
from synapse.service import MatchingService

colorama.init()


async def run_recommend(args) -> int:
    db = await get_synapse_db()
    service = MatchingService.from_config(db)
    try:
        matches = await service.find_top_matches(
            args.user_id,
            limit=args.limit,
            min_score=args.min_score,
            deadline=args.deadline,
        )
    finally:
        await service.close()
        await close_database()

    if not matches:
        print(f"{Fore.YELLOW}Нет рекомендаций для пользователя {args.user_id}{Style.RESET_ALL}", file=sys.stderr)
    print(json.dumps([match.to_dict() for match in matches], ensure_ascii=False, indent=2))
    return 0


async def run_score(args) -> int:
    db = await get_synapse_db()
    service = MatchingService.from_config(db)
    try:
        match = await service.calculate_score(
            args.user_id,
            args.project_id,
            record_action=None if args.no_history else args.action,
        )
    finally:
        await service.close()
        await close_database()

    if match is None:
        print(f"{Fore.RED}✗ Матч недоступен: пользователь или проект не найден{Style.RESET_ALL}", file=sys.stderr)
        return 1

    print(json.dumps(match.to_dict(), ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Synapse: матчинг пользователей и стартап-проектов',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:
  python main.py recommend 42 --limit 5 --min-score 60
  python main.py score 42 7
  python main.py score 42 7 --action applied
        """
    )
    parser.add_argument(
        '--log-level',
        default=Settings.LOG_LEVEL,
        help='Уровень логирования (DEBUG, INFO, WARNING, ERROR)'
    )
    parser.add_argument(
        '--json-logs',
        action='store_true',
        help='JSON формат логов'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    recommend = subparsers.add_parser('recommend', help='Топ проектов для пользователя')
    recommend.add_argument('user_id', type=int)
    recommend.add_argument('--limit', type=int, default=get_limit('default_limit', 10), help='Максимум результатов (1-50)')
    recommend.add_argument('--min-score', type=float, default=get_limit('default_min_score', 40), help='Минимальный score (0-100)')
    recommend.add_argument('--deadline', type=float, default=None, help='Таймаут скоринга, секунды')
    recommend.set_defaults(handler=run_recommend)

    score = subparsers.add_parser('score', help='Match score пользователя и проекта')
    score.add_argument('user_id', type=int)
    score.add_argument('project_id', type=int)
    score.add_argument(
        '--action',
        default='viewed',
        choices=['viewed', 'applied', 'invested', 'dismissed', 'none'],
        help='Действие для записи в историю'
    )
    score.add_argument('--no-history', action='store_true', help='Не записывать историю')
    score.set_defaults(handler=run_score)

    return parser


def main():
    """Главная функция."""
    args = build_parser().parse_args()
    setup_logging(level=args.log_level, use_json=True if args.json_logs else None)

    if not is_synapse_enabled():
        print(f"{Fore.RED}✗ Synapse отключен в config/features.yaml{Style.RESET_ALL}", file=sys.stderr)
        sys.exit(1)

    sys.exit(asyncio.run(args.handler(args)))


if __name__ == "__main__":
    main()
