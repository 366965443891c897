"""
Local startup script for the reminder service.

Runs the API, a Celery worker and Celery beat (the reminder triggers) side by
side and stops all of them when any one exits.
"""

import multiprocessing
import signal
import subprocess
import sys
import time
from pathlib import Path
from typing import Dict, List

import redis

from reminder_service.config.settings import settings
from reminder_service.utils.logging import get_logger

logger = get_logger()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

SERVICES: Dict[str, List[str]] = {
    "API": [
        "-m",
        "uvicorn",
        "reminder_service.main:app",
        "--host",
        "0.0.0.0",
        "--port",
        "8000",
    ],
    "Worker": [
        "-m",
        "celery",
        "-A",
        "reminder_service.celery",
        "worker",
        "--loglevel=info",
        "--queues=notifications",
    ],
    "Beat": [
        "-m",
        "celery",
        "-A",
        "reminder_service.celery",
        "beat",
        "--loglevel=info",
    ],
}


def setup_signal_handlers():
    """Setup signal handlers for graceful shutdown"""

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, initiating shutdown...")
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def run_service(name: str):
    """Run one service in the foreground of this process"""
    try:
        logger.info(f"Starting {name} process")
        subprocess.run(
            [sys.executable, *SERVICES[name]], check=True, cwd=str(PROJECT_ROOT)
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"{name} process failed with return code {e.returncode}: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info(f"{name} process interrupted")


def check_redis_connection() -> bool:
    """Check the Celery broker is reachable"""
    try:
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD or None,
            socket_connect_timeout=5,
        )
        client.ping()
        logger.info("Redis connection successful")
        return True
    except redis.exceptions.RedisError as e:
        logger.error(f"Redis connection failed: {e}")
        return False


def terminate_processes(processes: List[multiprocessing.Process]):
    logger.info("Initiating graceful shutdown of all services")

    for process in processes:
        if process.is_alive():
            process.terminate()

    for process in processes:
        process.join(timeout=10)
        if process.is_alive():
            logger.warning(f"{process.name} did not terminate gracefully, force killing")
            process.kill()
            process.join()


def main():
    setup_signal_handlers()

    if not check_redis_connection():
        logger.error("Cannot start services without Redis connection")
        sys.exit(1)

    processes: List[multiprocessing.Process] = []
    try:
        for name in SERVICES:
            process = multiprocessing.Process(target=run_service, args=(name,), name=name)
            process.start()
            processes.append(process)

        logger.info("API: http://localhost:8000, docs at http://localhost:8000/docs")

        while all(p.is_alive() for p in processes):
            time.sleep(1)

        dead = [p.name for p in processes if not p.is_alive()]
        logger.error(f"Service(s) exited unexpectedly: {', '.join(dead)}")
    except KeyboardInterrupt:
        logger.info("Shutdown signal received")
    finally:
        terminate_processes(processes)
        logger.info("All services stopped")


if __name__ == "__main__":
    main()
