# config_loader.py
# Shipping configuration: environment variables first, then the optional
# app-config-<env> DynamoDB table (global rows overlaid by env rows).

import os
import time
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, List

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from kms_utils import is_wrapped, kms_decrypt_wrapped

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ConfigError(RuntimeError):
    pass


# ---------------- Env --------------------------------------------------------

def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.environ.get(name)
    return v if v not in (None, "") else default

def _env_bool(name: str, default: bool = False) -> bool:
    v = _env(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")

def environment() -> str:
    return _env("ENVIRONMENT", "dev")

def app_config_table() -> Optional[str]:
    return _env("APP_CONFIG_TABLE")

def region() -> str:
    return _env("AWS_REGION") or _env("AWS_DEFAULT_REGION") or "us-west-2"

def _ttl_seconds() -> int:
    return int(_env("CONFIG_CACHE_TTL_SECONDS", "60"))

API_URL_DEFAULTS = {
    "shippo_api_base_url": "https://api.goshippo.com",
}
DEFAULT_HTTP_TIMEOUT = 30

# ---------------- AWS / cache ------------------------------------------------

_table = None
_cache_data: Optional[Dict[str, Any]] = None
_cache_expires_at: float = 0.0


def _get_table():
    global _table
    if _table is None:
        dynamodb = boto3.resource("dynamodb", region_name=region())
        _table = dynamodb.Table(app_config_table())
    return _table

def _to_jsonable(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)
    if isinstance(obj, list):
        return [_to_jsonable(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _to_jsonable(v) for k, v in obj.items()}
    return obj

def _scan_env(env: str) -> List[Dict[str, Any]]:
    """Scan config rows for one environment key (small table, safe to scan)."""
    items: List[Dict[str, Any]] = []
    kwargs = {"FilterExpression": Attr("environment").eq(env)}
    while True:
        resp = _get_table().scan(**kwargs)
        items.extend(resp.get("Items", []))
        if "LastEvaluatedKey" not in resp:
            break
        kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
    return items

def _merge_global_and_env() -> Dict[str, Any]:
    cfg: Dict[str, Any] = {}
    for it in _scan_env("global"):
        cfg[it["config_key"]] = it.get("value")
    for it in _scan_env(environment()):
        cfg[it["config_key"]] = it.get("value")
    return _to_jsonable(cfg)

# ---------------- Public API -------------------------------------------------

def load_config(force: bool = False) -> Dict[str, Any]:
    """
    Load merged app-config (global + current ENVIRONMENT), cached for
    CONFIG_CACHE_TTL_SECONDS. Without APP_CONFIG_TABLE the overlay is empty.
    """
    global _cache_data, _cache_expires_at
    if not app_config_table():
        return {}

    now = time.time()
    if not force and _cache_data is not None and now < _cache_expires_at:
        return _cache_data

    try:
        cfg = _merge_global_and_env()
    except ClientError as e:
        raise ConfigError(f"DynamoDB error loading config: {e.response['Error'].get('Message', 'unknown')}")

    _cache_data = cfg
    _cache_expires_at = now + max(_ttl_seconds(), 1)
    return cfg

def get_value(key: str, default: Any = None, *, required: bool = False) -> Any:
    """Environment variable KEY (upper-cased) wins over the app-config row."""
    env_v = _env(key.upper())
    if env_v is not None:
        return env_v
    cfg = load_config()
    if cfg.get(key) not in (None, ""):
        return cfg[key]
    if required:
        raise ConfigError(f"Missing required config key: {key} (env={environment()}, table={app_config_table()})")
    return default

def get_api_url(service: str) -> str:
    key = f"{service}_api_base_url"
    return str(get_value(key, API_URL_DEFAULTS.get(key, ""))).rstrip("/")

def get_api_timeout(service: str) -> float:
    default = _env("HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT))
    raw = get_value(f"{service}_api_timeout_seconds", default)
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid timeout for {service}: {raw!r}")

def get_secret(key: str, *, required: bool = False) -> Optional[str]:
    """Like get_value, but decrypts ENCRYPTED(...) values through KMS."""
    v = get_value(key, None, required=required)
    if v is None:
        return None
    v = str(v)
    if is_wrapped(v):
        try:
            return kms_decrypt_wrapped(v, _env("SHIPPING_KMS_KEY_ARN"))
        except ValueError as e:
            raise ConfigError(f"Unable to decrypt {key}: {e}")
    return v

def shipping_settings() -> Dict[str, Any]:
    """Everything the shipping provider factory needs, resolved once per call."""
    mock = _env_bool("MOCK_SHIPPING")
    provider = str(get_value("shipping_provider", "shippo")).lower()
    api_key = None if (mock or provider == "mock") else get_secret(f"{provider}_api_key")
    return {
        "provider": provider,
        "api_key": api_key,
        "base_url": get_api_url(provider),
        "timeout": get_api_timeout(provider),
        "mock": mock,
    }

def invalidate_cache() -> None:
    """Clear the in-memory cache so the next call re-reads DynamoDB."""
    global _cache_data, _cache_expires_at
    _cache_data = None
    _cache_expires_at = 0.0

def resolved_source() -> Dict[str, Any]:
    """For diagnostics/logging."""
    return {"environment": environment(), "table": app_config_table(), "region": region()}
