# rate_request.py
# Validates a rate request and assembles the provider-agnostic shipment quote
# payload: {from_address, to_address, parcel, insurance?}.

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List

from insurance import INSURANCE_CURRENCY, required_insurance
from package_catalog import PackageCatalog
from shipping_errors import MissingField, UnknownPackageSize

SHIP_COUNTRY = "US"
DISTANCE_UNIT = "in"
MASS_UNIT = "lb"

RATE_FIELDS = ["declared_value", "seller_zip", "buyer_zip", "package_size"]


def _is_blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, str):
        return not v.strip()
    return v in ([], {})


def missing_fields(obj: Dict[str, Any], fields: List[str]) -> List[str]:
    return [f for f in fields if _is_blank(obj.get(f))]


@dataclass
class ShippingRateRequest:
    package_size: Any = None
    seller_zip: Any = None
    buyer_zip: Any = None
    declared_value: Any = None

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "ShippingRateRequest":
        return cls(
            package_size=body.get("package_size"),
            seller_zip=body.get("seller_zip"),
            buyer_zip=body.get("buyer_zip"),
            declared_value=body.get("declared_value"),
        )


@dataclass
class QuoteRequest:
    shipment: Dict[str, Any]
    insurance_amount: Decimal

    @property
    def insurance_required(self) -> bool:
        return self.insurance_amount > 0


def _address(zip_code: Any) -> Dict[str, Any]:
    return {"zip": str(zip_code).strip(), "country": SHIP_COUNTRY}


def build_quote_request(request: ShippingRateRequest, catalog: PackageCatalog) -> QuoteRequest:
    missing = missing_fields(vars(request), RATE_FIELDS)
    if missing:
        raise MissingField("Missing required shipping information", missing)

    package = catalog.lookup(request.package_size)
    if package is None:
        raise UnknownPackageSize(request.package_size)

    insurance_amount = required_insurance(request.declared_value)

    shipment: Dict[str, Any] = {
        "from_address": _address(request.seller_zip),
        "to_address": _address(request.buyer_zip),
        "parcel": {
            "length": package.length,
            "width": package.width,
            "height": package.height,
            "distance_unit": DISTANCE_UNIT,
            "weight": package.weight,
            "mass_unit": MASS_UNIT,
        },
    }
    if insurance_amount > 0:
        shipment["insurance"] = {"amount": insurance_amount, "currency": INSURANCE_CURRENCY}

    return QuoteRequest(shipment=shipment, insurance_amount=insurance_amount)
