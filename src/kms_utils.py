# kms_utils.py
"""
KMS helpers for secrets stored in app-config (e.g. the Shippo API key).

Encrypted values are stored as ENCRYPTED(base64_ciphertext) and always use
the encryption context {"app": "card-shipping"}.

Usage:
    from kms_utils import kms_encrypt, kms_decrypt_wrapped

    stored = kms_encrypt("shippo_live_...", kms_key_arn)
    api_key = kms_decrypt_wrapped(stored)
"""

import os
import base64
import logging
from typing import Union, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

ENCRYPTION_CONTEXT = {"app": "card-shipping"}

_kms_client = None


def _get_kms_client():
    """Get or create KMS client (cached)."""
    global _kms_client
    if _kms_client is None:
        region = os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or "us-west-2"
        _kms_client = boto3.client("kms", region_name=region)
    return _kms_client


def is_wrapped(value: Optional[str]) -> bool:
    return isinstance(value, str) and value.startswith("ENCRYPTED(") and value.endswith(")")


def _unwrap_encrypted(value: str) -> str:
    if is_wrapped(value):
        return value[len("ENCRYPTED("):-1]
    return value


def kms_encrypt(plaintext: Union[str, bytes], kms_key_arn: Optional[str] = None) -> str:
    """
    Encrypt plaintext with KMS and return it as ENCRYPTED(base64).

    kms_key_arn defaults to the SHIPPING_KMS_KEY_ARN environment variable.
    Raises ValueError when no key is available; ClientError from KMS propagates.
    """
    if kms_key_arn is None:
        kms_key_arn = os.environ.get("SHIPPING_KMS_KEY_ARN")
        if not kms_key_arn:
            raise ValueError("kms_key_arn required: pass as argument or set SHIPPING_KMS_KEY_ARN")

    plaintext_bytes = plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext

    try:
        response = _get_kms_client().encrypt(
            KeyId=kms_key_arn,
            Plaintext=plaintext_bytes,
            EncryptionContext=ENCRYPTION_CONTEXT,
        )
    except ClientError as e:
        logger.error(f"[KMS] Encryption failed: {e}")
        raise

    ciphertext_base64 = base64.b64encode(response["CiphertextBlob"]).decode("utf-8")
    return f"ENCRYPTED({ciphertext_base64})"


def kms_decrypt(ciphertext_wrapped: str, kms_key_arn: Optional[str] = None) -> bytes:
    if not ciphertext_wrapped:
        raise ValueError("Cannot decrypt empty/None value")

    try:
        ciphertext_blob = base64.b64decode(_unwrap_encrypted(ciphertext_wrapped), validate=True)
    except Exception as e:
        raise ValueError(f"Invalid base64 ciphertext: {e}")

    decrypt_params = {
        "CiphertextBlob": ciphertext_blob,
        "EncryptionContext": ENCRYPTION_CONTEXT,
    }
    if kms_key_arn:
        decrypt_params["KeyId"] = kms_key_arn

    try:
        response = _get_kms_client().decrypt(**decrypt_params)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        error_msg = e.response.get("Error", {}).get("Message", str(e))
        logger.error(f"[KMS] Decryption failed: {error_code} - {error_msg}")
        raise
    return response["Plaintext"]


def kms_decrypt_wrapped(blob: Optional[str], kms_key_arn: Optional[str] = None) -> str:
    """
    Decrypt an ENCRYPTED(...) value to a UTF-8 string.
    Values that are not wrapped pass through unchanged.
    """
    if not blob:
        return ""
    if not is_wrapped(blob):
        return blob
    try:
        return kms_decrypt(blob, kms_key_arn).decode("utf-8")
    except Exception as e:
        logger.error(f"[KMS] Decryption failed: {e}")
        raise ValueError(f"Failed to decrypt wrapped value: {e}")


def mask_secret(secret: Optional[str], keep: int = 4) -> str:
    if not secret:
        return ""
    if len(secret) <= keep:
        return "*" * len(secret)
    return "*" * (len(secret) - keep) + secret[-keep:]
