"""Load ``config.json`` into immutable settings objects.

The file uses camelCase keys and millisecond delays; everything handed to the
rest of the package is in seconds.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .models import ProgramRef

ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = ROOT / ".env"
CONFIG_ENV_VAR = "CATALOG_SCRAPER_CONFIG"
OUTPUT_DIR_ENV_VAR = "CATALOG_SCRAPER_OUTPUT_DIR"

LEGACY = "2018"
CURRENT = "2023"
SOURCE_KEYS = (LEGACY, CURRENT)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_ENRICH_DELAY_MS = 300


class ConfigError(RuntimeError):
    """Raised when the configuration file is missing or malformed."""


@dataclass(frozen=True)
class HttpConfig:
    timeout: float = 30.0
    max_redirects: int = 5
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class DelayConfig:
    between_subjects: float = 0.0
    between_programs: float = 0.0
    between_batches: float = 0.0


@dataclass(frozen=True)
class BatchingConfig:
    enabled: bool = False
    batch_size: int = 1


@dataclass(frozen=True)
class SourceConfig:
    enabled: bool = True
    program_urls: Tuple[str, ...] = ()
    program_names: Tuple[str, ...] = ()
    base_url: Optional[str] = None
    delays: DelayConfig = field(default_factory=DelayConfig)
    batching: BatchingConfig = field(default_factory=BatchingConfig)
    http: HttpConfig = field(default_factory=HttpConfig)

    def programs(self) -> List[ProgramRef]:
        return [ProgramRef(url=u, name=n) for u, n in zip(self.program_urls, self.program_names)]


@dataclass(frozen=True)
class OutputConfig:
    directory: Path = Path("output")
    filenames: Mapping[str, str] = field(
        default_factory=lambda: {
            LEGACY: "courses-2018.json",
            CURRENT: "courses-2023.json",
            "combined": "courses-combined.json",
        }
    )
    generate_summary: bool = True


@dataclass(frozen=True)
class ScraperConfig:
    sources: Mapping[str, SourceConfig]
    output: OutputConfig = field(default_factory=OutputConfig)
    http: HttpConfig = field(default_factory=HttpConfig)

    def source(self, key: str) -> SourceConfig:
        return self.sources.get(key) or SourceConfig(enabled=False)


def _get(data: Mapping[str, Any], key: str, expected: type, where: str, default: Any = None) -> Any:
    if key not in data:
        if default is not None:
            return default
        raise ConfigError(f"Missing '{where}.{key}' in config")
    value = data[key]
    # bool is an int subclass; keep numbers and flags apart
    if expected in (int, float) and (isinstance(value, bool) or not isinstance(value, (int, float))):
        raise ConfigError(f"'{where}.{key}' must be a number, got {value!r}")
    if expected not in (int, float) and not isinstance(value, expected):
        raise ConfigError(f"'{where}.{key}' must be {expected.__name__}, got {value!r}")
    return value


def _ms(value: float) -> float:
    return float(value) / 1000.0


def _parse_http(data: Mapping[str, Any], where: str, base: Optional[HttpConfig] = None) -> HttpConfig:
    base = base or HttpConfig()
    return HttpConfig(
        timeout=_ms(_get(data, "timeout", float, where, base.timeout * 1000)),
        max_redirects=int(_get(data, "maxRedirects", int, where, base.max_redirects)),
        user_agent=_get(data, "userAgent", str, where, base.user_agent),
    )


def _parse_delays(data: Mapping[str, Any], where: str, enrich_default: bool = False) -> DelayConfig:
    # betweenSubjects doubles as the per-course delay of the 2023 enrichment pass
    subject_default = DEFAULT_ENRICH_DELAY_MS if enrich_default else 0
    return DelayConfig(
        between_subjects=_ms(_get(data, "betweenSubjects", float, where, subject_default) or 0),
        between_programs=_ms(_get(data, "betweenPrograms", float, where, 0) or 0),
        between_batches=_ms(_get(data, "betweenBatches", float, where, 0) or 0),
    )


def _parse_batching(data: Mapping[str, Any], where: str) -> BatchingConfig:
    enabled = _get(data, "enabled", bool, where, False) or False
    batch_size = int(_get(data, "batchSize", int, where, 1))
    if batch_size < 1:
        raise ConfigError(f"'{where}.batchSize' must be at least 1")
    return BatchingConfig(enabled=enabled, batch_size=batch_size)


def _parse_source(key: str, data: Mapping[str, Any], http: HttpConfig) -> SourceConfig:
    where = f"scrapers.{key}"
    enabled = _get(data, "enabled", bool, where)
    delays = _parse_delays(
        _get(data, "delays", dict, where, {}) or {}, f"{where}.delays", enrich_default=(key == CURRENT)
    )
    batching = _parse_batching(_get(data, "batching", dict, where, {}) or {}, f"{where}.batching")
    if "http" in data:
        http = _parse_http(_get(data, "http", dict, where), f"{where}.http", base=http)

    if key == LEGACY:
        urls = _get(data, "programUrls", list, where)
        names = _get(data, "programNames", list, where)
        if len(urls) != len(names):
            raise ConfigError(
                f"'{where}.programUrls' and '{where}.programNames' differ in length "
                f"({len(urls)} vs {len(names)})"
            )
        return SourceConfig(
            enabled=enabled,
            program_urls=tuple(str(u) for u in urls),
            program_names=tuple(str(n) for n in names),
            delays=delays,
            batching=batching,
            http=http,
        )

    return SourceConfig(
        enabled=enabled,
        base_url=_get(data, "baseUrl", str, where),
        delays=delays,
        batching=batching,
        http=http,
    )


def _parse_output(data: Mapping[str, Any]) -> OutputConfig:
    filenames = _get(data, "filenames", dict, "output")
    for key in SOURCE_KEYS + ("combined",):
        _get(filenames, key, str, "output.filenames")
    directory = os.environ.get(OUTPUT_DIR_ENV_VAR) or _get(data, "directory", str, "output")
    return OutputConfig(
        directory=Path(directory),
        filenames=dict(filenames),
        generate_summary=bool(_get(data, "generateSummary", bool, "output", False)),
    )


def parse_config(data: Mapping[str, Any]) -> ScraperConfig:
    """Build a :class:`ScraperConfig` from an already decoded JSON object."""
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a JSON object")
    http = _parse_http(_get(data, "http", dict, "config", {}) or {}, "http")
    scrapers = _get(data, "scrapers", dict, "config")
    sources: Dict[str, SourceConfig] = {}
    for key in SOURCE_KEYS:
        if key in scrapers:
            sources[key] = _parse_source(key, _get(scrapers, key, dict, "scrapers"), http)
    output = _parse_output(_get(data, "output", dict, "config"))
    return ScraperConfig(sources=sources, output=output, http=http)


def resolve_config_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path)
    load_dotenv(dotenv_path=ENV_PATH, override=False)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    cwd_path = Path.cwd() / "config.json"
    if cwd_path.exists():
        return cwd_path
    return ROOT / "config.json"


def load_config(path: Optional[Path] = None) -> ScraperConfig:
    """Read and validate the config file. Raises :class:`ConfigError`."""
    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read {config_path}: {exc}") from exc
    return parse_config(data)


def with_output_directory(config: ScraperConfig, directory: Path) -> ScraperConfig:
    return replace(config, output=replace(config.output, directory=Path(directory)))
