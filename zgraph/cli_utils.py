"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
import click
from functools import wraps
from typing import Any, Iterable

from .config import logger
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError, ResolutionFailed
)


def print_jsonl(items: Iterable[Any]) -> None:
    """Print one JSON object per line on stdout."""
    for item in items:
        print(json.dumps(item, ensure_ascii=False), flush=True)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean JSON output on stdout, log messages on stderr
    - Consistent error handling with specific exit codes
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            func(*args, **kwargs)
            sys.exit(SUCCESS)
        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except ResolutionFailed as e:
            # Diagnostics were already printed by the command
            logger.error(str(e))
            sys.exit(e.exit_code)
        except CommandError as e:
            logger.error(str(e))
            print_jsonl([{
                "error": str(e),
                "type": type(e).__name__,
                "exit_code": e.exit_code
            }])
            sys.exit(e.exit_code)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            print_jsonl([{
                "error": str(e),
                "type": type(e).__name__
            }])
            sys.exit(get_exit_code_for_exception(e))

    return wrapper
