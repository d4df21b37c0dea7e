from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from dex_arbitrage.core.exceptions import ConfigurationError

from .models import PairConfig, Settings, VenueKind, default_venues

DEFAULT_CONFIG_PATHS = (
    Path("config.yaml"),
    Path("config/config.yaml"),
    Path("config/config.example.yaml"),
)

# Environment names understood by the original deployment scripts.
_ENV_SCALARS: dict[str, tuple[str, ...]] = {
    "POLYGON_RPC_URL": ("rpc", "url"),
    "WETH": ("pair", "base", "address"),
    "USDC": ("pair", "quote", "address"),
    "START_USDC": ("trade_size",),
    "GAS_USDC_PER_TX": ("gas_cost",),
    "PROFIT_THRESHOLD": ("profit_threshold",),
    "POLL_INTERVAL_SEC": ("poll_interval_sec",),
}
_ENV_VENUES: dict[str, tuple[VenueKind, str]] = {
    "UNISWAP_QUOTER": ("uniswap_v3", "quoter_address"),
    "UNIV3_FEE": ("uniswap_v3", "fee"),
    "QUICKSWAP_QUOTER": ("algebra", "quoter_address"),
}


def load_settings(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from provided path, layer environment and overrides on top, and return validated Settings."""
    data: dict[str, Any] = {}

    candidates = [Path(path)] if path else list(DEFAULT_CONFIG_PATHS)
    for candidate in candidates:
        if candidate.exists():
            try:
                with candidate.open("r", encoding="utf-8") as fp:
                    data = yaml.safe_load(fp) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Cannot parse {candidate}: {exc}") from exc
            break
    else:
        if path:
            raise ConfigurationError(f"Config file not found: {path}")

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    if env is None:
        load_dotenv()
        env = os.environ
    apply_env(data, env)

    if overrides:
        data.update(overrides)

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def _section(target: dict[str, Any], key: str) -> dict[str, Any]:
    # "pair:" left empty in YAML parses as None; treat it as absent.
    if target.get(key) is None:
        target[key] = {}
    section = target[key]
    if not isinstance(section, dict):
        raise ConfigurationError(f"Configuration section {key!r} must be a mapping")
    return section


def apply_env(data: dict[str, Any], env: Mapping[str, str]) -> None:
    """Write recognised environment variables into the raw config mapping in place."""
    for name, keys in _ENV_SCALARS.items():
        value = env.get(name)
        if not value:
            continue
        if keys[0] == "pair":
            token = keys[1]
            pair = _section(data, "pair")
            if pair.get(token) is None:
                pair[token] = PairConfig().model_dump()[token]
        target = data
        for key in keys[:-1]:
            target = _section(target, key)
        target[keys[-1]] = value

    venue_values = {name: env.get(name) for name in _ENV_VENUES if env.get(name)}
    if not venue_values:
        return
    if data.get("venues") is None:
        data["venues"] = [venue.model_dump() for venue in default_venues()]
    venues = data["venues"]
    if not isinstance(venues, list):
        raise ConfigurationError("Configuration section 'venues' must be a list")
    for name, value in venue_values.items():
        kind, field = _ENV_VENUES[name]
        matched = [venue for venue in venues if isinstance(venue, dict) and venue.get("kind") == kind]
        if not matched:
            raise ConfigurationError(f"{name} is set but no {kind} venue is configured")
        for venue in matched:
            venue[field] = value
