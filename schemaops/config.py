from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

DATASOURCE_ENV_PREFIX = "SCHEMAOPS_DATASOURCE_"


@dataclass
class DatasourceConfig:
    datasource_id: str
    url: str | None
    echo: bool = False
    connect_args: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.datasource_id or not self.datasource_id.strip():
            raise ValueError("datasource_id must be a non-empty string")


def datasources_from_env(
    prefix: str = DATASOURCE_ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> dict[str, DatasourceConfig]:
    """
    Build datasource configs from environment variables.

    Every variable named ``<prefix><ID>`` becomes a datasource whose id is the
    lower-cased ``<ID>`` and whose URL is the variable's value:

        SCHEMAOPS_DATASOURCE_MAIN=postgresql+asyncpg://user:pw@db/app
        -> {"main": DatasourceConfig("main", "postgresql+asyncpg://...")}
    """
    env = os.environ if environ is None else environ
    configs: dict[str, DatasourceConfig] = {}
    for key, value in env.items():
        if not key.startswith(prefix) or len(key) == len(prefix):
            continue
        datasource_id = key[len(prefix):].lower()
        configs[datasource_id] = DatasourceConfig(datasource_id=datasource_id, url=value or None)
    return configs
