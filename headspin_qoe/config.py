"""
HeadSpin configuration.

Credentials are read from ``.headspinrc`` files and environment variables so
they never have to live in the test code.

Resolution order (later wins):
    1. Field defaults
    2. /etc/headspinrc, ~/.headspinrc, ~/.config/headspin/config
    3. The nearest .headspinrc found walking up from the working directory
    4. An explicit rc file path
    5. HEADSPIN_* environment variables
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RC_FILENAME = ".headspinrc"

# camelCase keys as written in rc files shared with the JavaScript tooling
_KEY_ALIASES = {
    "deviceId": "device_id",
    "apiHost": "api_host",
    "uiHost": "ui_host",
    "preTestBuffer": "pre_test_buffer_seconds",
    "settle": "settle_seconds",
    "timeout": "timeout_seconds",
}

_ENV_VARS = {
    "HEADSPIN_TOKEN": "token",
    "HEADSPIN_DEVICE_ID": "device_id",
    "HEADSPIN_API_HOST": "api_host",
    "HEADSPIN_UI_HOST": "ui_host",
    "HEADSPIN_PRE_TEST_BUFFER": "pre_test_buffer_seconds",
    "HEADSPIN_SETTLE": "settle_seconds",
    "HEADSPIN_TIMEOUT": "timeout_seconds",
}


class HeadspinConfig(BaseModel):
    """Settings for one HeadSpin recording run."""

    # rc files may hold numeric ids, e.g. {"deviceId": 12345}
    model_config = ConfigDict(coerce_numbers_to_str=True)

    token: Optional[str] = Field(None, description="HeadSpin API access token")
    device_id: Optional[str] = Field(None, description="HeadSpin device id to lock and record")
    api_host: str = Field(default="api-dev.headspin.io", description="API host name")
    ui_host: str = Field(default="ui-dev.headspin.io", description="Web UI host used for session links")
    pre_test_buffer_seconds: float = Field(
        default=5.0, ge=0, description="Recording time captured before the first test runs"
    )
    settle_seconds: float = Field(
        default=10.0, ge=0, description="Wait after stopping the session before labels are pushed"
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")

    @classmethod
    def load(
        cls,
        rc_path: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> "HeadspinConfig":
        """Load configuration from rc files and the environment.

        Args:
            rc_path: Explicit rc file, applied after the discovered ones
            env: Environment mapping (defaults to os.environ)
            cwd: Directory to start the .headspinrc search from

        Returns:
            HeadspinConfig with every source merged
        """
        values: Dict[str, Any] = {}
        for path in _candidate_rc_files(cwd or Path.cwd()):
            values.update(read_rc_file(path))
        if rc_path is not None:
            path = Path(rc_path)
            if not path.is_file():
                raise ConfigurationError(f"HeadSpin rc file not found: {path}")
            values.update(read_rc_file(path))

        environ = os.environ if env is None else env
        for var, field_name in _ENV_VARS.items():
            value = environ.get(var)
            if value:
                values[field_name] = value

        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
            )
            raise ConfigurationError(f"Invalid HeadSpin configuration: {problems}") from e

    def require_credentials(self) -> Tuple[str, str]:
        """Fail fast when the token or device id is missing.

        Returns:
            The (token, device_id) pair
        """
        missing = [name for name in ("token", "device_id") if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                f"Missing HeadSpin {' and '.join(missing)}. "
                f"Set them in {RC_FILENAME} or via HEADSPIN_TOKEN / HEADSPIN_DEVICE_ID."
            )
        return self.token or "", self.device_id or ""


def read_rc_file(path: Path) -> Dict[str, Any]:
    """Parse an rc file written either as JSON or as dotenv-style key=value lines."""
    text = path.read_text(encoding="utf-8")
    try:
        raw = json.loads(text)
    except ValueError:
        entries = dotenv_values(path, interpolate=False, encoding="utf-8")
        raw = {key: value for key, value in entries.items() if value is not None}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"HeadSpin rc file {path} must contain an object")

    logger.debug(f"Loaded HeadSpin settings from {path}")
    fields = HeadspinConfig.model_fields
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _KEY_ALIASES.get(key, key)
        if name in fields:
            values[name] = value
    return values


def _candidate_rc_files(cwd: Path) -> List[Path]:
    home = Path.home()
    candidates = [
        Path("/etc/headspinrc"),
        home / RC_FILENAME,
        home / ".config" / "headspin" / "config",
    ]
    for directory in [cwd, *cwd.parents]:
        found = directory / RC_FILENAME
        if found.is_file():
            if found not in candidates:
                candidates.append(found)
            break
    return [path for path in candidates if path.is_file()]


__all__ = ["HeadspinConfig", "RC_FILENAME", "read_rc_file"]
