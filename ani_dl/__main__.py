"""
Console entry point: runs the typer app and turns uncaught errors into a
readable panel and a non-zero exit code.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from ani_dl.cli.app import app
from ani_dl.cli.formatters import format_error_with_suggestions
from ani_dl.exceptions import AniDlError


def main() -> None:
    if os.name == "nt":
        # Windows consoles default to a legacy code page
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.reconfigure(encoding="utf-8")
            except (TypeError, AttributeError):
                pass

    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Interrupted, exiting.[/yellow]")
        sys.exit(0)
    except AniDlError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        logging.getLogger("ani_dl").debug("Unhandled exception", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
