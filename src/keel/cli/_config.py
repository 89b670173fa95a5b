"""``keel config`` — print the configuration ``AppConfig.from_env`` would build.

Secrets are masked so the output is safe to paste into a bug report.
"""

import argparse
from dataclasses import fields

from keel.config import AppConfig
from keel.data.database import redact_url

_SECRET_FIELDS = frozenset({"secret_key"})


def run_config(args: argparse.Namespace) -> None:
    config = AppConfig.from_env()
    width = max(len(f.name) for f in fields(config))
    for f in fields(config):
        value = getattr(config, f.name)
        if f.name in _SECRET_FIELDS and value:
            value = "***"
        elif f.name == "database_url" and value:
            value = redact_url(value)
        print(f"{f.name:<{width}}  {value}")
