"""Configuration loading and validation.

Usage:
    config = load("sonargraph-bridge.yaml")       # raises ConfigError on bad config
    unit = config.resolve_unit("com.bank:core")   # BuildUnit for a configured module
    report = config.report_file()                 # report location after fallbacks
    generate_template("sonargraph-bridge.yaml")   # writes example file to disk
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from sonargraph_bridge.hosts import MetricDefinition
from sonargraph_bridge.orchestrator import BuildUnit
from sonargraph_bridge.registry import DEFAULT_STORE

REPORT_FILENAME = "sonargraph-sonarqube-report.json"
REPORT_DIR = "sonargraph"
_SEVERITIES = ("BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


class ProjectNotFoundError(ConfigError):
    """Raised when a build unit key is not found in the config."""


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass
class Config:
    project_key: str
    base_dir: Path
    url: str = ""
    token: str = ""
    modules: dict[str, str] = field(default_factory=dict)
    report_path: str | None = None
    legacy_report_path: str | None = None
    system_base_dir: str | None = None
    cost_per_index_point: float | None = None
    custom_metrics: Path = DEFAULT_STORE
    offline_rules: dict[str, str] = field(default_factory=dict)
    offline_metrics: list[MetricDefinition] = field(default_factory=list)

    @property
    def has_server(self) -> bool:
        return bool(self.url and self.token)

    def resolve_unit(self, key: str | None = None) -> BuildUnit:
        """Return the build unit for a module key, or the project root.

        ``None`` and the project key both select the root.
        """
        if key is None or key == self.project_key:
            return BuildUnit(self.project_key, str(self.base_dir), is_root=True)
        if key in self.modules:
            return BuildUnit(key, str((self.base_dir / self.modules[key]).absolute()), is_root=False)
        available = ", ".join(self.modules.keys()) or "(none configured)"
        raise ProjectNotFoundError(
            f"Module '{key}' not found. Project key is '{self.project_key}', configured modules: {available}"
        )

    def report_file(self) -> Path:
        """Locate the report.

        An explicit legacy path wins over the current one; both are relative
        to the project base directory. Without either, the Maven location is
        used when the file exists there, otherwise the Gradle location.
        """
        for configured in (self.legacy_report_path, self.report_path):
            if configured:
                return self.base_dir / configured
        maven = self.base_dir / "target" / REPORT_DIR / REPORT_FILENAME
        if maven.is_file():
            return maven
        return self.base_dir / "build" / REPORT_DIR / REPORT_FILENAME


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str = "sonargraph-bridge.yaml") -> Config:
    """Load and validate configuration from a YAML file.

    Environment variables SONAR_URL and SONAR_TOKEN override file values.
    A relative ``project.base_dir`` is taken relative to the config file.

    Raises:
        ConfigError: if the file is missing, malformed, or required fields
                     are absent.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(
            f"Config file not found: '{config_path}'\n"
            "Run `python -m sonargraph_bridge init` to generate a template."
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{config_path}': {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"'{config_path}' must be a YAML mapping at the top level.")

    server  = raw.get("server") or {}
    project = raw.get("project") or {}
    report  = raw.get("report") or {}
    offline = raw.get("offline") or {}

    url   = os.environ.get("SONAR_URL")   or server.get("url",   "")
    token = os.environ.get("SONAR_TOKEN") or server.get("token", "")

    errors: list[str] = []
    base_dir = (path.parent / str(project.get("base_dir") or ".")).absolute()
    config = Config(
        project_key=str(project.get("key") or "").strip(),
        base_dir=base_dir,
        url=str(url).strip(),
        token=str(token).strip(),
        modules={str(k): str(v) for k, v in (project.get("modules") or {}).items()},
        report_path=report.get("path"),
        legacy_report_path=report.get("legacy_path"),
        system_base_dir=report.get("system_base_dir"),
        cost_per_index_point=_cost(raw.get("cost_per_index_point"), errors),
        custom_metrics=Path(raw.get("custom_metrics") or DEFAULT_STORE).expanduser(),
        offline_rules=_rules(offline.get("rules"), errors),
        offline_metrics=_metrics(offline.get("metrics"), errors),
    )
    _validate(config, errors)
    return config


def _cost(raw, errors: list[str]) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        errors.append(f"  - 'cost_per_index_point' must be a number, got '{raw}'")
        return None
    if math.isnan(value):
        errors.append("  - 'cost_per_index_point' must be a number, got NaN")
        return None
    return value


def _rules(raw, errors: list[str]) -> dict[str, str]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        errors.append("  - 'offline.rules' must map rule keys to severities")
        return {}
    rules = {}
    for key, severity in raw.items():
        severity = str(severity or "MAJOR").upper()
        if severity not in _SEVERITIES:
            errors.append(f"  - 'offline.rules.{key}' has unknown severity '{severity}'")
            continue
        rules[str(key)] = severity
    return rules


def _metrics(raw, errors: list[str]) -> list[MetricDefinition]:
    metrics = []
    for entry in raw or []:
        if not isinstance(entry, dict) or not entry.get("key"):
            errors.append(f"  - 'offline.metrics' entry without a key: {entry!r}")
            continue
        metrics.append(MetricDefinition(
            key=str(entry["key"]),
            name=str(entry.get("name") or entry["key"]),
            is_float=bool(entry.get("float", False)),
            description=str(entry.get("description") or ""),
        ))
    return metrics


def _validate(config: Config, errors: list[str]) -> None:
    """Raise ConfigError if required fields are missing."""
    if not config.project_key:
        errors.append("  - 'project.key' is missing")
    if not config.base_dir.is_dir():
        errors.append(f"  - 'project.base_dir' is not a directory: '{config.base_dir}'")
    if bool(config.url) != bool(config.token):
        errors.append(
            "  - 'server.url' and 'server.token' must be set together "
            "(or set the SONAR_URL and SONAR_TOKEN environment variables)"
        )

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
server:
  # Leave out to work offline
  url: "https://sonar.example.com"
  token: "squ_xxxxxxxxxxxx"       # Generate at: <your-sonar-url>/account/security

project:
  key: "com.example:my-project"
  base_dir: "."
  modules:
    # SonarQube module key: directory relative to base_dir
    "com.example:my-project-core": "core"

report:
  # path: "target/sonargraph/sonargraph-sonarqube-report.json"
  # system_base_dir: "/path/the/report/was/created/in"

# cost_per_index_point: 11.5
# custom_metrics: "~/.sonargraphintegration/custom-metrics.yaml"

offline:
  # Rules considered active when no server is configured
  rules:
    THRESHOLD_VIOLATION_ERROR: "MAJOR"
    DUPLICATE_CODE_BLOCK: "MINOR"
  metrics:
    - key: "sg_i.CORE_COMPONENTS"
      name: "Components"
"""


def generate_template(output_path: str = "sonargraph-bridge.yaml") -> None:
    """Write a template sonargraph-bridge.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting secrets).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
