"""worker 进程入口：python -m taskhub.worker"""

import asyncio
import signal

import structlog

from .logging_config import setup_logging
from .main import create_components, shutdown

log = structlog.get_logger()


async def run() -> None:
    components = await create_components()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    log.info("worker_started")
    try:
        await stop.wait()
    finally:
        log.info("worker_stopping")
        await shutdown(components)


def main() -> None:
    setup_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
