"""Identity resolver: reads the local instance id from IMDSv2.

Single-shot by contract; a failure here ends the run.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import requests

from ip_provisioner import config
from ip_provisioner.common import _logger
from ip_provisioner.errors import IdentityUnavailable

_INSTANCE_ID_RE = re.compile(r"^i-[0-9a-f]{8,32}$")
_REGION_RE = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d+$")


class IdentityResolver:
    """Instance Metadata Service v2 client."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        endpoint: str = config.IMDS_ENDPOINT,
        timeout: float = config.IMDS_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.log = _logger(logger, __name__)

    def _token(self) -> str:
        try:
            resp = self.session.put(
                f"{self.endpoint}/latest/api/token",
                headers={"X-aws-ec2-metadata-token-ttl-seconds": str(config.IMDS_TOKEN_TTL_SECONDS)},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise IdentityUnavailable(f"failed to fetch IMDS token: {exc}") from exc
        token = (resp.text or "").strip()
        if not token:
            raise IdentityUnavailable("IMDS returned an empty token")
        return token

    def _get(self, path: str) -> str:
        token = self._token()
        try:
            resp = self.session.get(
                f"{self.endpoint}/latest/meta-data/{path}",
                headers={"X-aws-ec2-metadata-token": token},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise IdentityUnavailable(f"failed to fetch meta-data/{path}: {exc}") from exc
        return (resp.text or "").strip()

    def resolve(self) -> str:
        """Return the running instance id.

        Raises:
            IdentityUnavailable: endpoint unreachable, non-2xx, or the body is not
                an instance id.
        """
        instance_id = self._get("instance-id")
        if not _INSTANCE_ID_RE.match(instance_id):
            raise IdentityUnavailable(f"malformed instance id from IMDS: {instance_id!r}")
        self.log.info("[identity] fetched instance id %s", instance_id)
        return instance_id

    def region(self) -> str:
        """Return the region the instance runs in (``placement/region``)."""
        region = self._get("placement/region")
        if not _REGION_RE.match(region):
            raise IdentityUnavailable(f"malformed region from IMDS: {region!r}")
        self.log.debug("[identity] fetched region %s", region)
        return region
