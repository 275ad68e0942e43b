# shipping_api.py
# Shipping API for marketplace listings: package sizes, rate quotes, labels.
# Routes:
#   GET  /api/package-sizes
#   POST /api/get-shipping-rate
#   POST /api/create-label
#
# Each request runs one synchronous pipeline; nothing is kept between calls
# except the read-only package catalog built at import time.

import json
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from config_loader import ConfigError, shipping_settings
from package_catalog import PackageCatalog, default_catalog
from rate_presenter import present
from rate_request import ShippingRateRequest, build_quote_request
from shipping_errors import ShippingError
from shipping_gateway import ShippingProvider, get_shipping_provider, validate_label_request

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CATALOG = default_catalog()

# =============== HTTP helpers ===============

def _json_decimal(o):
    if isinstance(o, Decimal):
        return int(o) if o == o.to_integral_value() else float(o)
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")

def _resp(status: int, body: Dict[str, Any]):
    return {
        "statusCode": status,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "OPTIONS,GET,POST",
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
        },
        "body": json.dumps(body, default=_json_decimal),
    }

def _body(event) -> Dict[str, Any]:
    raw = event.get("body")
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Request body is not valid JSON; treating as empty")
        return {}
    return data if isinstance(data, dict) else {}

def _error(e: ShippingError):
    return _resp(e.status_code, e.public_body())

# =============== Route handlers ===============

def handle_package_sizes(event, catalog: PackageCatalog = CATALOG):
    return _resp(200, {"success": True, "sizes": catalog.describe()})

def handle_get_shipping_rate(event, catalog: PackageCatalog = CATALOG,
                             provider: Optional[ShippingProvider] = None):
    body = _body(event)
    try:
        quote = build_quote_request(ShippingRateRequest.from_body(body), catalog)
        provider = provider or get_shipping_provider(shipping_settings())
        rates = provider.request_rates(quote.shipment)
    except ShippingError as e:
        logger.info(f"Rate request rejected ({e.status_code}): {e.message}")
        return _error(e)

    return _resp(200, {
        "success": True,
        "insurance_required": quote.insurance_required,
        "insurance_amount": quote.insurance_amount,
        "rates": present(rates, quote.insurance_required),
    })

def handle_create_label(event, provider: Optional[ShippingProvider] = None):
    body = _body(event)
    rate_id, seller_email, declared_value = (
        body.get("rate_id"), body.get("seller_email"), body.get("declared_value"),
    )
    try:
        validate_label_request(rate_id, seller_email, declared_value)
        provider = provider or get_shipping_provider(shipping_settings())
        result = provider.create_label(rate_id, seller_email, declared_value)
    except ShippingError as e:
        logger.info(f"Label request rejected ({e.status_code}): {e.message}")
        return _error(e)

    return _resp(200, {"success": True, **result})

# =============== Lambda entry ===============

ROUTES: Dict[tuple, Callable] = {
    ("/api/package-sizes", "GET"): handle_package_sizes,
    ("/api/get-shipping-rate", "POST"): handle_get_shipping_rate,
    ("/api/create-label", "POST"): handle_create_label,
}

def _route_path(event) -> str:
    # API Gateway may include a stage or base-path prefix; match on the suffix.
    path = (event.get("resource") or event.get("path") or "").rstrip("/")
    for route, _method in ROUTES:
        if path.endswith(route):
            return route
    return path

def lambda_handler(event, _context):
    path = _route_path(event)
    method = (event.get("httpMethod") or "").upper()
    logger.info(f"{method} {path}")

    if method == "OPTIONS":
        return _resp(200, {"success": True})

    handler = ROUTES.get((path, method))
    if handler is None:
        return _resp(405, {"success": False, "error": "Method not allowed"})

    try:
        return handler(event)
    except ConfigError as e:
        logger.error(f"Shipping configuration error: {e}")
        return _resp(500, {"success": False, "error": str(e)})
    except Exception as e:
        logger.error(f"Unexpected error in shipping_api.lambda_handler: {e}", exc_info=True)
        return _resp(500, {"success": False, "error": str(e)})
