"""Common helpers shared by the provisioner components.

- _logger: consistent logger selection.
- Tag helpers: tags_to_dict, tag_specifications, tag_filters.
- Error helpers: is_retryable, error_message (botocore classification).
- _client_region: best-effort region of a boto3 client.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from botocore.exceptions import ClientError, HTTPClientError

# Codes the toolset has always treated as throttling.
THROTTLE_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "RequestThrottled",
    "ServiceUnavailable",
    "InternalError",
}


def _logger(fallback: Optional[logging.Logger], name: str = "ip_provisioner") -> logging.Logger:
    """Return the given logger or a sensible default."""
    return fallback or logging.getLogger(name)


def _client_region(client) -> str:
    return getattr(getattr(client, "meta", None), "region_name", "") or ""


def tags_to_dict(pairs: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Convert AWS [{'Key','Value'}] into a plain dict; empty on errors."""
    out: Dict[str, str] = {}
    for t in pairs or []:
        k, v = t.get("Key"), t.get("Value")
        if k:
            out[str(k)] = "" if v is None else str(v)
    return out


def tag_specifications(resource_type: str, tags) -> List[Dict[str, object]]:
    """Build a ``TagSpecifications`` list for a create call."""
    return [
        {
            "ResourceType": resource_type,
            "Tags": [{"Key": t.key, "Value": t.value} for t in tags],
        }
    ]


def tag_filters(tags: Iterable) -> List[Dict[str, object]]:
    """Build ``tag:<key>`` filters matching every given tag exactly."""
    return [{"Name": f"tag:{t.key}", "Values": [t.value]} for t in tags]


def _error_code(exc: ClientError) -> str:
    return str((exc.response or {}).get("Error", {}).get("Code", ""))


def is_retryable(exc: BaseException) -> bool:
    """Classify a botocore failure as transient (throttling, 5xx, transport).

    Local botocore errors (missing profile, no region) are not transient.
    """
    if isinstance(exc, ClientError):
        code = _error_code(exc)
        status = (exc.response or {}).get("ResponseMetadata", {}).get("HTTPStatusCode") or 0
        return code in THROTTLE_CODES or code.startswith("5") or int(status) >= 500
    return isinstance(exc, HTTPClientError)


def error_message(exc: BaseException) -> str:
    """Short ``Code: message`` text for a botocore error."""
    if isinstance(exc, ClientError):
        err = (exc.response or {}).get("Error", {})
        return f"{err.get('Code', '?')}: {err.get('Message', exc)}"
    return str(exc)
