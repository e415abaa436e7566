"""Helpers shared by the kvshelf commands."""

import click
from pydantic import ValidationError

from kvshelf.core.config import StoreConfig, load_config
from kvshelf.core.errors import ConfigError


def load_cli_config(ctx: click.Context) -> StoreConfig:
    """Resolve the store configuration from the group's --root/--config options."""
    opts = ctx.obj or {}
    try:
        return load_config(opts.get("config_path"), root=opts.get("root"))
    except (ConfigError, ValidationError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")
