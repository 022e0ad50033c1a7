"""OAuth 1.0a request signing for the X API."""

import base64
import hashlib
import hmac
import secrets
import time
from typing import Dict, Optional
from urllib.parse import quote


def _encode(value: str) -> str:
    return quote(str(value), safe="")


def signature_base_string(method: str, url: str, params: Dict[str, str]) -> str:
    """Build the signature base string from the method, bare URL and all params."""
    encoded = sorted((_encode(k), _encode(v)) for k, v in params.items())
    param_string = "&".join(f"{k}={v}" for k, v in encoded)
    return "&".join([method.upper(), _encode(url), _encode(param_string)])


def sign(base_string: str, consumer_secret: str, token_secret: str) -> str:
    key = f"{_encode(consumer_secret)}&{_encode(token_secret)}"
    digest = hmac.new(key.encode(), base_string.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


def oauth1_header(
    method: str,
    url: str,
    consumer_key: str,
    consumer_secret: str,
    token: str,
    token_secret: str,
    params: Optional[Dict[str, str]] = None,
    nonce: Optional[str] = None,
    timestamp: Optional[str] = None,
) -> str:
    """
    Build an ``Authorization`` header value for a request.

    Args:
        method: HTTP method
        url: Request URL without query string
        consumer_key: App API key
        consumer_secret: App API secret
        token: User access token
        token_secret: User access token secret
        params: Query and form parameters to include in the signature.
            JSON bodies are not signed.
        nonce: Fixed nonce, for reproducible signatures
        timestamp: Fixed timestamp, for reproducible signatures

    Returns:
        Header value starting with ``OAuth``
    """
    oauth_params = {
        "oauth_consumer_key": consumer_key,
        "oauth_nonce": nonce or secrets.token_hex(16),
        "oauth_signature_method": "HMAC-SHA1",
        "oauth_timestamp": timestamp or str(int(time.time())),
        "oauth_token": token,
        "oauth_version": "1.0",
    }

    all_params = dict(params or {})
    all_params.update(oauth_params)
    base_string = signature_base_string(method, url, all_params)
    oauth_params["oauth_signature"] = sign(base_string, consumer_secret, token_secret)

    header_params = ", ".join(
        f'{_encode(k)}="{_encode(v)}"' for k, v in sorted(oauth_params.items())
    )
    return f"OAuth {header_params}"
