import argparse
import os
import sys

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from memoless_engine import __version__
from memoless_engine.config import get_memoless_config
from memoless_engine.server import create_app


def init_logger(console_log_level: str = "INFO") -> None:
    logger.remove()
    # Console output
    logger.add(
        sys.stderr,
        level=console_log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | {message}",
        colorize=True,
    )

    # File output
    logger.add(
        "logs/debug_{time:YYYY-MM-DD}.log",
        rotation="10 MB",
        retention="30 days",
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message} | {extra}",
        backtrace=True,
        diagnose=True,
    )


def parse_args():
    parser = argparse.ArgumentParser(description="THORChain Memoless Registration API")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--host", type=str, default=None, help="Bind address (default: $HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: $PORT or 3000)")
    parser.add_argument("--env-file", type=str, default=".env", help="dotenv file to load before startup")
    return parser.parse_args()


@logger.catch
def run(args, console_log_level: str):
    init_logger(console_log_level)
    load_dotenv(args.env_file)
    logger.info(f"Memoless API, version v{__version__}")

    config = get_memoless_config()
    app = create_app(config)
    uvicorn.run(
        app=app,
        host=args.host or os.environ.get("HOST", "0.0.0.0"),
        port=args.port or int(os.environ.get("PORT", "3000")),
        log_level=console_log_level.lower(),
    )


if __name__ == "__main__":
    args = parse_args()
    console_log_level = "DEBUG" if args.verbose else "INFO"
    run(args, console_log_level=console_log_level)
