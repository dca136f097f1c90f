"""
Configuration loader for the market simulation.

Reads an optional YAML config over built-in defaults and injects secrets
from environment variables.
"""

import copy
import os
from typing import Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULT_CONFIG: dict = {
    "market": {
        "tick_seconds": 1.0,
        "history_length": 50,
        "news_limit": 15,
        "transaction_log_limit": 100,
        "price_floor": 0.01,
        "circuit_breaker": 0.09,
        "now_average_scale": 100.0,
        "seed": None,
    },
    "betting": {
        "window_seconds": 30,
        "payout_multiplier": 1.8,
        "history_limit": 100,
    },
    "player": {
        "starting_balance": 1000.0,
    },
    "fetcher": {
        "enabled": True,
        "api_key": "demo",
        "base_url": "https://www.alphavantage.co",
        "timeout": 10.0,
        "batch_size": 5,
        "batch_delay": 1.5,
        "days": 30,
        "max_age_seconds": 3600,
        "refresh_interval": 3600,
    },
}


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load configuration, layering a YAML file over ``DEFAULT_CONFIG``.

    Injects ALPHAVANTAGE_API_KEY into fetcher.api_key when it is set.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path:
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        _merge(config, loaded)

    api_key = os.getenv("ALPHAVANTAGE_API_KEY")
    if api_key:
        config["fetcher"]["api_key"] = api_key

    if config["betting"]["window_seconds"] < 1:
        raise ValueError("betting.window_seconds must be at least 1")
    if config["market"]["history_length"] < 1:
        raise ValueError("market.history_length must be at least 1")

    return config
