"""
Programmatic Alembic migration runner.

The project ships no alembic.ini; the script location and database URL are
resolved from this package and from property_api.db.config.

Usage examples:
    python -m property_api.db.run_migrations upgrade head
    python -m property_api.db.run_migrations downgrade -1
    python -m property_api.db.run_migrations current
"""

import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from property_api.db.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


# PUBLIC_INTERFACE
def make_alembic_config() -> Config:
    """Build an Alembic Config pointing at the bundled migrations."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # env.py builds its own async engine; the sync URL is only used offline.
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


_COMMANDS: Dict[str, Callable[[Config, List[str]], None]] = {
    "upgrade": lambda cfg, rest: command.upgrade(cfg, *(rest or ["head"])),
    "downgrade": lambda cfg, rest: command.downgrade(cfg, *(rest or ["-1"])),
    "history": lambda cfg, rest: command.history(cfg, *rest),
    "current": lambda cfg, rest: command.current(cfg, *rest),
    "heads": lambda cfg, rest: command.heads(cfg, *rest),
}


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run an Alembic command with programmatic configuration."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    cmd, rest = args[0], args[1:]
    handler = _COMMANDS.get(cmd)
    if handler is None:
        print(f"Unsupported Alembic command: {cmd}")
        sys.exit(2)
    handler(make_alembic_config(), rest)


if __name__ == "__main__":
    main()
