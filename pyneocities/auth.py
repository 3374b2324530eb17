"""Credential helpers for CLI commands."""

import logging
from typing import Any, Optional

import click

from .api import NeocitiesClient
from .config import config
from .exceptions import NeocitiesAPIError, NeocitiesError
from .output import OutputFormatter

logger = logging.getLogger(__name__)


def login(sitename: str, password: str) -> str:
    """Exchange a sitename/password pair for an API key.

    Returns:
        The API key

    Raises:
        NeocitiesAPIError: If the login is rejected
    """
    with NeocitiesClient(sitename=sitename, password=password) as client:
        response = client.key()
    api_key = response.get("api_key")
    if not api_key:
        raise NeocitiesAPIError("No API key in response")
    return api_key


def require_api_key(ctx: Any, out: OutputFormatter) -> str:
    """Return an API key, prompting for a login when none is configured.

    The key comes from --api-key, NEOCITIES_API_KEY or the config file. When
    none is available the user is asked for sitename and password; the key
    obtained is stored for later runs.
    """
    api_key: Optional[str] = ctx.obj.get("api_key") or config.api_key
    if api_key:
        return api_key

    out.info("Please login to get your API key:")
    sitename = click.prompt("sitename", default=config.sitename or None)
    password = click.prompt("password", hide_input=True)

    try:
        api_key = login(sitename, password)
    except NeocitiesError as e:
        out.error(f"Login failed: {e}")
        ctx.exit(1)
        return ""  # Unreachable, but helps type checker

    config.save_credentials(api_key, sitename)
    ctx.obj["sitename"] = sitename
    out.success(
        f"The API key for {sitename} has been stored in {config.get_config_path()}."
    )
    return api_key


def require_sitename(ctx: Any, client: NeocitiesClient) -> str:
    """Return the site name of the logged-in account.

    Falls back to asking the API when no site name is configured.
    """
    sitename: Optional[str] = ctx.obj.get("sitename") or config.sitename
    if sitename:
        return sitename
    info = client.info().get("info") or {}
    sitename = info.get("sitename")
    if not sitename:
        raise NeocitiesAPIError("Could not determine the site name for this API key")
    logger.debug(f"Resolved site name {sitename} from the API")
    return sitename
