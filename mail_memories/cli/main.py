"""CLI entry point for Mail Memories."""

import logging

import click
from dotenv import load_dotenv

from mail_memories.config import Settings
from mail_memories.storage.db import CredentialStore

logger = logging.getLogger(__name__)


class AppContext:
    """Settings plus the open credential store, shared by every command."""

    def __init__(self, settings: Settings, store: CredentialStore) -> None:
        self.settings = settings
        self.store = store

    def close(self) -> None:
        self.store.close()


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Relive the emails you sent on this day in previous years."""
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    ctx.obj = AppContext(settings, CredentialStore(db_path=settings.db_path))
    ctx.call_on_close(ctx.obj.close)


# Import and register commands after cli is defined to avoid circular imports.
from mail_memories.cli.commands import link, timeline, today, unlink  # noqa: E402

cli.add_command(link)
cli.add_command(unlink)
cli.add_command(today)
cli.add_command(timeline)
