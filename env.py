"""Platform detection and environment utilities for Neon Arcade.

This module provides a centralized location for runtime platform detection,
isolating browser-specific (pygbag/WASM) concerns from the desktop runtime.

The detection mechanism uses ``sys.platform`` to identify the target runtime
environment, so the arcade can pick a blocking or a cooperative main loop
while keeping a single codebase.

Platform Support
----------------
The arcade supports two runtime environments:

1. **Desktop (CPython + PyGame)**:
   - Development and testing environment
   - Detected when not running under Emscripten
   - Blocking frame loops paced with ``time.sleep``

2. **Browser (Pygbag/Emscripten/WASM)**:
   - Web deployment via WebAssembly
   - Detected via ``sys.platform == "emscripten"``
   - Requires async/await for cooperative multitasking

Module Variables
----------------
is_browser : bool
    True when running in browser via pygbag (Emscripten/WASM).

is_desktop : bool
    True when running on desktop CPython with PyGame.

is_headless : bool
    True when SDL was asked for the dummy video driver (CI, tests).

Example Usage
-------------
::

    from env import is_browser, get_platform_name

    if is_browser:
        asyncio.run(async_main())
    else:
        main()

Notes
-----
- Platform detection occurs at module import time
- Detection results are cached in module-level variables
- Use ``require_*`` functions for strict platform enforcement
"""

import os
import sys

# Pygbag patches sys.platform to "emscripten"; the platform module is not
# reliable inside WASM.
try:
    is_browser = sys.platform == "emscripten"
except Exception:
    is_browser = False

is_desktop = not is_browser

is_headless = os.environ.get("SDL_VIDEODRIVER", "") == "dummy"

# Uppercase aliases used by arcade_app
IS_PYGBAG = is_browser
IS_DESKTOP = is_desktop


def get_platform_name():
    """Return a human-readable platform name.

    Returns
    -------
    str
        ``"browser"`` under pygbag, ``"desktop"`` otherwise.
    """
    if is_browser:
        return "browser"
    return "desktop"


def require_browser():
    """Raise an error if not running in browser environment.

    Raises
    ------
    RuntimeError
        If not running in pygbag browser environment.
    """
    if not is_browser:
        raise RuntimeError(
            "This code requires browser environment (pygbag/Emscripten). "
            f"Current platform: {get_platform_name()}"
        )


def require_desktop():
    """Raise an error if not running in desktop environment.

    Use at the start of desktop-only code paths (file dialogs, screenshots)
    to fail fast with a clear message.

    Raises
    ------
    RuntimeError
        If not running in desktop CPython environment.
    """
    if not is_desktop:
        raise RuntimeError(
            "This code requires desktop CPython environment. "
            f"Current platform: {get_platform_name()}"
        )
