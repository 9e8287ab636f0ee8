"""Load config from CODEMATE_CONFIG_PATH or return default.

``load_config()`` is memoised with ``functools.lru_cache`` so the file is read
and parsed at most once per process.  Call ``load_config.cache_clear()`` to
force a re-read (useful in tests and when ``CODEMATE_CONFIG_PATH`` changes at
runtime).
"""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .schema import CodemateConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


class _Env(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CODEMATE_", extra="ignore")
    config_path: Optional[str] = None
    api_key: Optional[str] = None


_env: Optional[_Env] = None


def _get_env() -> _Env:
    global _env
    if _env is None:
        _env = _Env()
    return _env


@functools.lru_cache(maxsize=1)
def load_config() -> CodemateConfig:
    """Load config from CODEMATE_CONFIG_PATH if set and valid; else return DEFAULT_CONFIG.

    ``CODEMATE_API_KEY``, when set, overrides ``model.api_key`` so secrets can
    stay out of the config file.
    """
    env = _get_env()
    config = DEFAULT_CONFIG
    path = env.config_path
    if path and path.strip():
        p = Path(path).expanduser().resolve()
        if p.is_file():
            data = json.loads(p.read_text(encoding="utf-8"))
            config = CodemateConfig.model_validate(data)
        else:
            logger.warning("CODEMATE_CONFIG_PATH %s is not a file; using defaults", p)
    if env.api_key:
        config = config.model_copy(
            update={"model": config.model.model_copy(update={"api_key": env.api_key})}
        )
    return config
