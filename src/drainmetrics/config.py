"""Service configuration loaded from environment variables."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from drainmetrics.errors import ConfigError

logger = logging.getLogger(__name__)

_TRUE = {"1", "t", "true", "yes", "on"}
_FALSE = {"0", "f", "false", "no", "off"}


def _parse_bool(name: str, raw: str | None, default: bool) -> bool:
    if not raw:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    logger.error("%s supports only boolean values, got %r", name, raw)
    return default


def _parse_int(name: str, raw: str | None, default: int) -> int:
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.error("Failed to parse %s %r", name, raw)
        return default


def parse_metrics_to_exclude(raw: str | None) -> frozenset[str]:
    """Parse "metric1,metric2" into a set of metric names."""
    if not raw:
        return frozenset()
    return frozenset(name.strip() for name in raw.split(",") if name.strip())


def parse_dimension_pairs_to_exclude(raw: str | None) -> frozenset[tuple[str, str]]:
    """Parse "key1=val1,key2=val2" into a set of (key, value) pairs."""
    if not raw:
        return frozenset()
    pairs = set()
    for item in raw.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep or not key:
            logger.error("Ignoring malformed dimension pair %r", item)
            continue
        pairs.add((key, value))
    logger.info("Dimension key-value pairs to exclude: %s", sorted(pairs))
    return frozenset(pairs)


@dataclass(frozen=True)
class DrainConfig:
    """Settings of the drain service.

    Attributes:
        port: HTTP port to listen on (Heroku assigns it through PORT).
        access_token: SignalFx access token.
        ingest_url: SignalFx ingest base URL, preferred over realm.
        realm: SignalFx realm, e.g. "us1".
        interval_seconds: Time between registry collections.
        expiry_seconds: Idle time after which a series is evicted.
        metrics_to_exclude: Metric names never dispatched.
        dimension_pairs_to_exclude: Dimension pairs never dispatched.
        debug: Log at DEBUG level.
        send_internal_metrics: Dispatch metrics about the collector itself.
        dry_run: Log snapshots instead of sending them.
        heroku_app_name: App running the collector (HEROKU_APP_NAME).
        heroku_dyno_id: Dyno running the collector (HEROKU_DYNO_ID).
    """

    port: int = 8000
    access_token: str = ""
    ingest_url: str = ""
    realm: str = ""
    interval_seconds: int = 10
    expiry_seconds: int = 300
    metrics_to_exclude: frozenset[str] = field(default_factory=frozenset)
    dimension_pairs_to_exclude: frozenset[tuple[str, str]] = field(
        default_factory=frozenset
    )
    debug: bool = False
    send_internal_metrics: bool = True
    dry_run: bool = False
    heroku_app_name: str = ""
    heroku_dyno_id: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DrainConfig":
        """Build a config from environment variables.

        Unparseable numbers and booleans are logged and their default kept.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            port=_parse_int("PORT", env.get("PORT"), defaults.port),
            access_token=env.get("SFX_TOKEN", ""),
            ingest_url=env.get("SFX_INGEST_URL", "").rstrip("/"),
            realm=env.get("SFX_REALM", ""),
            interval_seconds=_parse_int(
                "SFX_REPORTING_INTERVAL",
                env.get("SFX_REPORTING_INTERVAL"),
                defaults.interval_seconds,
            ),
            expiry_seconds=_parse_int(
                "SFX_EXPIRY_SECONDS",
                env.get("SFX_EXPIRY_SECONDS"),
                defaults.expiry_seconds,
            ),
            metrics_to_exclude=parse_metrics_to_exclude(
                env.get("SFX_METRICS_TO_EXCLUDE")
            ),
            dimension_pairs_to_exclude=parse_dimension_pairs_to_exclude(
                env.get("SFX_DIMENSION_PAIRS_TO_EXCLUDE")
            ),
            debug=_parse_bool("SFX_DEBUG", env.get("SFX_DEBUG"), defaults.debug),
            send_internal_metrics=_parse_bool(
                "SFX_INTERNAL_METRICS",
                env.get("SFX_INTERNAL_METRICS"),
                defaults.send_internal_metrics,
            ),
            dry_run=_parse_bool("SFX_DRY_RUN", env.get("SFX_DRY_RUN"), defaults.dry_run),
            heroku_app_name=env.get("HEROKU_APP_NAME", ""),
            heroku_dyno_id=env.get("HEROKU_DYNO_ID", ""),
        )

    def validate(self) -> None:
        """Raise ConfigError if the service cannot start with this config."""
        if self.interval_seconds <= 0:
            raise ConfigError("SFX_REPORTING_INTERVAL must be positive")
        if self.expiry_seconds <= 0:
            raise ConfigError("SFX_EXPIRY_SECONDS must be positive")
        if self.dry_run:
            return
        if not self.access_token:
            raise ConfigError("SFX_TOKEN environment variable not set")
        if not self.ingest_url and not self.realm:
            raise ConfigError("at least one of SFX_INGEST_URL or SFX_REALM should be set")

    @property
    def internal_dimensions(self) -> dict[str, str]:
        """Dimensions identifying this collector on its internal metrics.

        Unset values are left out.
        """
        dims = {"heroku_app": self.heroku_app_name, "dyno_id": self.heroku_dyno_id}
        return {key: value for key, value in dims.items() if value}

    @property
    def datapoint_endpoint(self) -> str:
        """SignalFx datapoint URL, preferring SFX_INGEST_URL over SFX_REALM."""
        if self.ingest_url:
            return f"{self.ingest_url}/v2/datapoint"
        if self.realm:
            return f"https://ingest.{self.realm}.signalfx.com/v2/datapoint"
        raise ConfigError("ingest URL or realm should be set")
