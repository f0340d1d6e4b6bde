"""Create the configured remote facade."""

from __future__ import annotations

import importlib
from typing import Any

from workorder_sync.config_settings import Config
from workorder_sync.domain.interfaces.remote_facade import IRemoteFacade
from workorder_sync.error_codes import ErrorCode
from workorder_sync.exceptions import ConfigurationError
from workorder_sync.utils.logging import get_logger

logger = get_logger(__name__)


def load_facade_factory(path: str) -> Any:
    """Import the object named by ``package.module:Attribute``."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(
            f"Invalid remote_facade path: {path!r}",
            suggestion="Use the form 'package.module:ClassName'",
            error_code=ErrorCode.CFG_FACADE_INVALID.value,
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            f"Cannot import remote facade module {module_name!r}",
            suggestion="Install the package that provides the facade",
            error_code=ErrorCode.CFG_FACADE_INVALID.value,
            context={"error": str(e)},
        ) from e
    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise ConfigurationError(
            f"{module_name!r} has no attribute {attribute!r}",
            error_code=ErrorCode.CFG_FACADE_INVALID.value,
        ) from e


def create_remote_facade(config: Config) -> IRemoteFacade:
    """Build the facade named by ``config.remote_facade``.

    The named object is called with the Config and must return an
    IRemoteFacade; a facade class taking ``config`` in its constructor fits.
    """
    if not config.remote_facade:
        raise ConfigurationError(
            "No remote facade configured",
            suggestion="Set remote_facade in config.yaml to 'package.module:ClassName'",
            error_code=ErrorCode.CFG_FACADE_INVALID.value,
        )

    factory = load_facade_factory(config.remote_facade)
    facade = factory(config)
    if not isinstance(facade, IRemoteFacade):
        raise ConfigurationError(
            f"{config.remote_facade} did not produce an IRemoteFacade",
            error_code=ErrorCode.CFG_FACADE_INVALID.value,
            context={"type": type(facade).__name__},
        )
    logger.debug("remote_facade_created", facade=type(facade).__name__)
    return facade
