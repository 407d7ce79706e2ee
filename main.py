"""
Launcher for the arcade.

Desktop: `python main.py`. Browser: `pygbag .` picks up this file and runs
the async entry point, which yields to the page between frames.
"""

import asyncio

import config
import env
from logging_config import setup_logging


def main():
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    import arcade_app

    arcade_app.main()


async def async_main():
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    import arcade_app

    await arcade_app.async_main()


if __name__ == "__main__":
    if env.is_browser:
        asyncio.run(async_main())
    else:
        main()
