"""
Entry point: configure logging, create the tables and serve the API.

    python main.py --port 8000
    python main.py --init-db      # create tables and exit
    python main.py --check-db     # report consistency issues and exit
"""
import argparse
import asyncio
import sys

import uvicorn
from loguru import logger

from config import get_setting

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(level=None, log_file=None):
    """Replace loguru's default sink with stderr and an optional rotating file"""
    level = level or get_setting("logging.level", "INFO")
    log_file = log_file or get_setting("logging.file")

    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    if log_file:
        logger.add(
            log_file,
            level=level,
            rotation=get_setting("logging.rotation", "10 MB"),
            retention="1 week",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            enqueue=True,
            backtrace=True,
        )
    return level


async def main(host, port, init_only=False):
    from api.app import create_app
    from database.db_session import init_db, close_db

    await init_db()
    if init_only:
        await close_db()
        return

    server = uvicorn.Server(uvicorn.Config(create_app(), host=host, port=port, log_level="warning"))
    logger.info(f"Serving KEALOA stats on http://{host}:{port}")
    try:
        await server.serve()
    finally:
        await close_db()


async def check_db():
    """Log every consistency issue in the database; returns the number of checks that failed"""
    from database.db_session import db_session, close_db
    from services.integrity_service import run_consistency_checks

    try:
        async with db_session() as session:
            issues = await run_consistency_checks(session)
    finally:
        await close_db()

    for name, rows in issues.items():
        for row in rows:
            logger.warning(f"{name}: {row}")
    return len(issues)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="KEALOA stats API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--init-db", action="store_true", help="Create the tables and exit")
    parser.add_argument("--check-db", action="store_true", help="Report consistency issues and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(level="DEBUG" if args.verbose else None)
    if args.check_db:
        sys.exit(1 if asyncio.run(check_db()) else 0)
    asyncio.run(main(args.host, args.port, init_only=args.init_db))
