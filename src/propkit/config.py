"""Run configuration — an explicit value passed to the lifecycle runner.

Settings come from keyword arguments, or from the environment via
``RunConfig.from_env``, which reads a ``.env`` file first (process
environment variables win over the file):

    PROPKIT_CHAIN_ID    primary chain id (default 1)
    PROPKIT_ADDRESSES   path to the address registry JSON
    DO_DEPLOY           run the author's deploy hook (default true)
    DO_BUILD            run the author's build hook (default true)
    DO_SIMULATE         run the backend simulation (default true)
    DO_VALIDATE         run the author's validate hook (default true)
    RPC_URL             node for the read-only on-chain check
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from propkit.errors import ConfigurationError


_TRUE = {"1", "true", "yes"}
_FALSE = {"0", "false", "no"}


@dataclass(frozen=True)
class RunConfig:
    chain_id: int = 1
    addresses_path: Optional[Path] = None
    do_deploy: bool = True
    do_build: bool = True
    do_simulate: bool = True
    do_validate: bool = True
    rpc_url: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        root: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "RunConfig":
        values: dict[str, str] = {}
        if root is not None:
            env_file = root / ".env"
            if env_file.exists():
                values.update(
                    {k: v for k, v in dotenv_values(env_file).items() if v is not None}
                )
        values.update(os.environ if environ is None else environ)

        addresses = values.get("PROPKIT_ADDRESSES")
        return cls(
            chain_id=_parse_int("PROPKIT_CHAIN_ID", values.get("PROPKIT_CHAIN_ID", "1")),
            addresses_path=Path(addresses) if addresses else None,
            do_deploy=parse_bool("DO_DEPLOY", values.get("DO_DEPLOY"), True),
            do_build=parse_bool("DO_BUILD", values.get("DO_BUILD"), True),
            do_simulate=parse_bool("DO_SIMULATE", values.get("DO_SIMULATE"), True),
            do_validate=parse_bool("DO_VALIDATE", values.get("DO_VALIDATE"), True),
            rpc_url=values.get("RPC_URL") or None,
        )


def parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be one of 1/0/true/false/yes/no, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        value = int(raw.strip(), 0)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value
