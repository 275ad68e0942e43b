# shipping_errors.py
# Error taxonomy shared by the shipping modules. Each error knows the HTTP
# status and public body the API returns for it.

from typing import Any, Dict, Optional


class ShippingError(RuntimeError):
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def public_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


# ---- 400: caller can correct ------------------------------------------------

class ValidationError(ShippingError):
    status_code = 400


class MissingField(ValidationError):
    def __init__(self, message: str, fields=None):
        super().__init__(message)
        self.fields = list(fields or [])


class UnknownPackageSize(ValidationError):
    def __init__(self, package_size: Any):
        super().__init__("Invalid package size")
        self.package_size = package_size


class InvalidDeclaredValue(ValidationError):
    def __init__(self, value: Any):
        super().__init__("Invalid declared value")
        self.value = value


class NoRatesAvailable(ShippingError):
    status_code = 400

    def __init__(self, message: str = "No shipping options available. Please try different parameters."):
        super().__init__(message)


class LabelCreationFailed(ShippingError):
    status_code = 400

    def __init__(self, details: Any = None):
        super().__init__("Failed to create label", details=details if details is not None else [])


# ---- 500: provider / transport fault ----------------------------------------

class GatewayError(ShippingError):
    status_code = 500

    def __init__(self, message: str, provider_status: Optional[int] = None):
        super().__init__(message)
        self.provider_status = provider_status
