"""
Programmatic Alembic runner; no alembic.ini needed.

Usage examples:
    python -m karigar.db.run_migrations upgrade head
    python -m karigar.db.run_migrations downgrade -1
    python -m karigar.db.run_migrations revision -m "add column" --autogenerate
"""

import sys
from pathlib import Path
from typing import List

from alembic import command
from alembic.config import Config

from karigar.db.config import get_settings


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Alembic Config pointing at this package's migrations directory."""
    cfg = Config()
    cfg.set_main_option("script_location", str(Path(__file__).resolve().parent / "migrations"))
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


def _revision(cfg: Config, args: List[str]) -> None:
    message = None
    autogenerate = "--autogenerate" in args
    if "-m" in args:
        idx = args.index("-m")
        message = args[idx + 1] if idx + 1 < len(args) else None
    command.revision(cfg, message=message, autogenerate=autogenerate)


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run an Alembic command with programmatic configuration."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    cfg = build_config()
    cmd, other = args[0], args[1:]

    if cmd == "upgrade":
        command.upgrade(cfg, other[0] if other else "head")
    elif cmd == "downgrade":
        command.downgrade(cfg, other[0] if other else "-1")
    elif cmd == "history":
        command.history(cfg)
    elif cmd == "current":
        command.current(cfg)
    elif cmd == "heads":
        command.heads(cfg)
    elif cmd == "revision":
        _revision(cfg, other)
    elif cmd == "show":
        if not other:
            print("Usage: show <revision>")
            sys.exit(2)
        command.show(cfg, other[0])
    else:
        print(f"Unsupported Alembic command: {cmd}")
        sys.exit(2)


if __name__ == "__main__":
    main()
