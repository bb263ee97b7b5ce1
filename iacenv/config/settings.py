"""
Runtime configuration for iacenv.

Configuration comes from environment variables, optionally completed by a
YAML remote configuration file describing per-tool mirrors::

    tofu:
      install_mode: mirror
      url_template: https://mirror.example.com/tofu/{Version}/{Artifact}
    tf:
      url: https://artifacts.example.com/hashicorp
      list_mode: html
      selector: "a"
      part: href
      new_base_url: https://artifacts.example.com/hashicorp

Environment variables always win over the file.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from iacenv.core.exceptions import ConfigError
from iacenv.core.platform import detect_platform

TENV_ROOT = "TENV_ROOT"
TENV_ARCH = "TENV_ARCH"
TENV_AUTO_INSTALL = "TENV_AUTO_INSTALL"
TENV_FORCE_REMOTE = "TENV_FORCE_REMOTE"
TENV_SKIP_SIGNATURE = "TENV_SKIP_SIGNATURE"
TENV_QUIET = "TENV_QUIET"
TENV_LOG = "TENV_LOG"
TENV_REMOTE_CONF = "TENV_REMOTE_CONF"
TENV_GITHUB_TOKEN = "TENV_GITHUB_TOKEN"
TENV_DETACHED_PROXY = "TENV_DETACHED_PROXY"
GITHUB_TOKEN = "GITHUB_TOKEN"
GITHUB_ACTIONS = "GITHUB_ACTIONS"
GITHUB_OUTPUT = "GITHUB_OUTPUT"

TOFU_PGP_KEY = "TOFUENV_OPENTOFU_PGP_KEY"
TF_PGP_KEY = "TFENV_HASHICORP_PGP_KEY"

INSTALL_MODES = ("direct", "api", "mirror")
LIST_MODES = ("api", "html", "mirror")

DEFAULT_ROOT_DIR = ".tenv"
REMOTE_CONF_FILE = "remote.yaml"

# tool key -> environment prefix
ENV_PREFIXES: Dict[str, str] = {
    "tofu": "TOFUENV_",
    "tf": "TFENV_",
    "tg": "TG_",
    "tm": "TM_",
    "atmos": "ATMOS_",
}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def parse_bool(value: Optional[str], default: bool, name: str = "") -> bool:
    """
    Parse a boolean environment value.

    Raises:
        ConfigError: For anything outside true/false/1/0/yes/no/on/off
    """
    if value is None or value.strip() == "":
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean value for {name or 'setting'}: {value!r}")


def load_remote_conf(path: Path) -> Dict[str, Dict[str, str]]:
    """
    Load the YAML remote configuration file.

    Args:
        path: File path; a missing file yields an empty configuration

    Returns:
        Dict of tool key -> settings (values converted to strings)

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping of mappings
    """
    path = Path(path)
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Remote configuration {path} must be a mapping")

    conf: Dict[str, Dict[str, str]] = {}
    for tool, section in data.items():
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigError(f"Section '{tool}' in {path} must be a mapping")
        conf[str(tool)] = {
            str(key): "" if value is None else str(value)
            for key, value in section.items()
        }
    return conf


@dataclass(frozen=True)
class ToolRemoteConfig:
    """
    Remote settings of one tool, merged from environment and YAML file.

    Attributes:
        prefix: Environment prefix (``TOFUENV_``, ``TFENV_``, ...)
        data: YAML section for the tool
        environ: Environment snapshot
    """

    prefix: str
    data: Mapping[str, str] = field(default_factory=dict)
    environ: Mapping[str, str] = field(default_factory=dict)

    def _get(self, key: str, env_suffix: str = "", default: str = "") -> str:
        if env_suffix:
            from_env = self.environ.get(self.prefix + env_suffix, "")
            if from_env:
                return from_env
        return self.data.get(key) or default

    def url(self, default: str) -> str:
        return self._get("url", "REMOTE", default).rstrip("/")

    def list_url(self, default: str) -> str:
        return self._get("list_url", "LIST_URL", default).rstrip("/")

    def install_mode(self, default: str) -> str:
        mode = self._get("install_mode", "INSTALL_MODE", default)
        if mode not in INSTALL_MODES:
            raise ConfigError(
                f"Unknown install mode {mode!r}, expected one of {', '.join(INSTALL_MODES)}"
            )
        return mode

    def list_mode(self, default: str) -> str:
        mode = self._get("list_mode", "LIST_MODE", default)
        if mode not in LIST_MODES:
            raise ConfigError(
                f"Unknown list mode {mode!r}, expected one of {', '.join(LIST_MODES)}"
            )
        return mode

    def url_template(self, default: str) -> str:
        return self._get("url_template", "URL_TEMPLATE", default)

    @property
    def selector(self) -> str:
        return self.data.get("selector") or "a"

    @property
    def part(self) -> str:
        return self.data.get("part") or "href"

    def basic_auth(self) -> Optional[Tuple[str, str]]:
        """(user, password) when both are configured, else None."""
        user = self._get("user", "REMOTE_USER")
        password = self._get("password", "REMOTE_PASSWORD")
        if user and password:
            return user, password
        return None

    def rewrite_rule(self, default_base: str) -> Optional[Tuple[str, str]]:
        """(old_base, new_base) when a rewrite is configured."""
        new_base = self.data.get("new_base_url", "")
        if not new_base:
            return None
        old_base = self.data.get("old_base_url") or default_base
        return old_base, new_base

    def rewrite(self, url: str, default_base: str) -> str:
        """
        Apply the rewrite rule to a URL.

        Example:
            >>> conf = ToolRemoteConfig("TG_", {"new_base_url": "https://mirror"})
            >>> conf.rewrite("https://github.com/x/y", "https://github.com")
            'https://mirror/x/y'
        """
        rule = self.rewrite_rule(default_base)
        if rule is None:
            return url
        old_base, new_base = rule
        if url.startswith(old_base):
            return new_base.rstrip("/") + url[len(old_base.rstrip("/")):]
        return url


@dataclass(frozen=True)
class Config:
    """
    Complete runtime configuration of one invocation.

    Built once by from_env and then threaded through the manager, retrievers
    and proxy. Use ``dataclasses.replace`` (or ``with_overrides``) to adjust it
    from command-line flags.
    """

    root_path: Path
    user_path: Path
    work_path: Path
    arch: str
    auto_install: bool = True
    force_remote: bool = False
    skip_signature: bool = False
    quiet: bool = False
    log_level: str = ""
    github_token: str = ""
    github_actions: bool = False
    github_output: str = ""
    detached_proxy: bool = False
    tofu_pgp_key_path: str = ""
    tf_pgp_key_path: str = ""
    remote_conf: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    environ: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        work_path: Optional[Path] = None,
    ) -> "Config":
        """
        Build the configuration from environment variables.

        Args:
            environ: Environment mapping (default: os.environ)
            work_path: Working directory (default: current directory)

        Raises:
            ConfigError: Invalid boolean or remote configuration file
        """
        environ = dict(os.environ if environ is None else environ)
        user_path = Path.home()

        root_value = environ.get(TENV_ROOT, "")
        root_path = Path(root_value).expanduser() if root_value else user_path / DEFAULT_ROOT_DIR

        conf_value = environ.get(TENV_REMOTE_CONF, "")
        conf_path = Path(conf_value).expanduser() if conf_value else root_path / REMOTE_CONF_FILE

        return cls(
            root_path=root_path,
            user_path=user_path,
            work_path=Path(work_path) if work_path is not None else Path.cwd(),
            arch=environ.get(TENV_ARCH, "") or detect_platform().arch,
            auto_install=parse_bool(environ.get(TENV_AUTO_INSTALL), True, TENV_AUTO_INSTALL),
            force_remote=parse_bool(environ.get(TENV_FORCE_REMOTE), False, TENV_FORCE_REMOTE),
            skip_signature=parse_bool(
                environ.get(TENV_SKIP_SIGNATURE), False, TENV_SKIP_SIGNATURE
            ),
            quiet=parse_bool(environ.get(TENV_QUIET), False, TENV_QUIET),
            log_level=environ.get(TENV_LOG, ""),
            github_token=environ.get(TENV_GITHUB_TOKEN, "") or environ.get(GITHUB_TOKEN, ""),
            github_actions=environ.get(GITHUB_ACTIONS, "") == "true",
            github_output=environ.get(GITHUB_OUTPUT, ""),
            detached_proxy=parse_bool(
                environ.get(TENV_DETACHED_PROXY), False, TENV_DETACHED_PROXY
            ),
            tofu_pgp_key_path=environ.get(TOFU_PGP_KEY, ""),
            tf_pgp_key_path=environ.get(TF_PGP_KEY, ""),
            remote_conf=load_remote_conf(conf_path),
            environ=environ,
        )

    def remote(self, tool_key: str) -> ToolRemoteConfig:
        """Remote settings of a tool ('tofu', 'tf', 'tg', 'tm', 'atmos')."""
        return ToolRemoteConfig(
            prefix=ENV_PREFIXES.get(tool_key, ""),
            data=self.remote_conf.get(tool_key, {}),
            environ=self.environ,
        )

    def with_overrides(self, **changes: Any) -> "Config":
        """Copy with some fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


__all__ = [
    "Config",
    "ToolRemoteConfig",
    "load_remote_conf",
    "parse_bool",
    "INSTALL_MODES",
    "LIST_MODES",
    "ENV_PREFIXES",
]
