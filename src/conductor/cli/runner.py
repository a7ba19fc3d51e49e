"""Fires a batch of requests through a configured ``RequestClient``."""

import asyncio
import logging
import sys
from typing import Any, TextIO

from conductor.configs.config import get_app_config
from conductor.configs.system import LoggingConfig
from conductor.engine.base import RequestInit
from conductor.engine.client import RequestClient
from conductor.engine.models import ClientConfig, RequestOptions
from conductor.infra.http_utils import HttpxTransport
from conductor.infra.logging import setup_logging

from .config import CLIConfig
from .formatter import HookLogFormatter

logger = logging.getLogger(__name__)


def build_client_config(cli: CLIConfig, base: ClientConfig, formatter: HookLogFormatter) -> ClientConfig:
    """Apply CLI overrides on top of the configured client settings."""
    update: dict[str, Any] = {"hooks": formatter.hooks()}
    if cli.capacity is not None:
        update["capacity"] = cli.capacity
    if cli.strategy is not None:
        update["queue_strategy"] = cli.strategy
    if cli.timeout is not None:
        update["default_timeout"] = cli.timeout
    if cli.attempts is not None:
        update["retry"] = base.retry.model_copy(update={"attempts": cli.attempts})
    return base.model_copy(update=update)


def build_logging_config(cli: CLIConfig, base: LoggingConfig) -> LoggingConfig:
    """Plain-text output; ``--debug`` raises only this package's loggers."""
    levels = dict(base.levels)
    if cli.debug:
        for name in [n for n in levels if n.startswith("conductor")] + ["conductor"]:
            levels[name] = "DEBUG"
    return base.model_copy(update={"json_output": False, "levels": levels})


async def run_probe(cli: CLIConfig, output: TextIO = sys.stdout) -> int:
    """Run every request, print hook events, return the number of failures."""
    app_config = get_app_config()
    setup_logging(build_logging_config(cli, app_config.logging))

    formatter = HookLogFormatter(output)
    config = build_client_config(cli, app_config.client, formatter)
    options = RequestOptions(key=cli.key, supersede=cli.supersede, dedupe=cli.dedupe)
    init = RequestInit(method=cli.method)

    async with HttpxTransport(app_config.transport) as transport:
        client = RequestClient(config, transport=transport)
        handles = [
            client.request(target, init, options)
            for _ in range(cli.repeat)
            for target in cli.targets
        ]
        results = await asyncio.gather(*(h.result for h in handles), return_exceptions=True)

    failures = 0
    for result in results:
        # Parser errors are not ConductorErrors but are still per-request failures;
        # the error hook has already rendered them.
        if isinstance(result, Exception):
            failures += 1
        elif isinstance(result, BaseException):
            raise result
    output.write(f"\n{len(results)} requests, {failures} failed ({formatter.summary()})\n")
    return failures
