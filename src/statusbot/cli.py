"""CLI entrypoint; re-exports the Typer app from the CLI surface."""

from .surfaces.cli.cli import app, main
from .surfaces.cli.commands.utils import require_config

__all__ = ["app", "main", "require_config"]


if __name__ == "__main__":  # pragma: no cover
    main()
