"""IMDSv2 identity resolver with a stubbed HTTP session."""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest
import requests

from ip_provisioner.errors import IdentityUnavailable
from ip_provisioner.identity import IdentityResolver


class _Response:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class _Session:
    """Records requests; serves ``routes`` keyed by URL path suffix."""

    def __init__(self, routes: Dict[str, _Response], token: Optional[_Response] = None,
                 error: Optional[Exception] = None) -> None:
        self.routes = routes
        self.token = token or _Response("tok-123")
        self.error = error
        self.requests: List[tuple] = []

    def put(self, url, headers=None, timeout=None):
        self.requests.append(("PUT", url, headers, timeout))
        if self.error is not None:
            raise self.error
        return self.token

    def get(self, url, headers=None, timeout=None):
        self.requests.append(("GET", url, headers, timeout))
        for suffix, resp in self.routes.items():
            if url.endswith(suffix):
                return resp
        return _Response("", 404)


def test_resolve_uses_imds_v2_token():
    session = _Session({"meta-data/instance-id": _Response("i-0123456789abcdef0\n")})
    resolver = IdentityResolver(session=session, endpoint="http://imds.test/", timeout=1.5)

    assert resolver.resolve() == "i-0123456789abcdef0"

    method, url, headers, timeout = session.requests[0]
    assert (method, url) == ("PUT", "http://imds.test/latest/api/token")
    assert "X-aws-ec2-metadata-token-ttl-seconds" in headers
    method, url, headers, timeout = session.requests[1]
    assert (method, url) == ("GET", "http://imds.test/latest/meta-data/instance-id")
    assert headers == {"X-aws-ec2-metadata-token": "tok-123"}
    assert timeout == 1.5


def test_unreachable_endpoint():
    session = _Session({}, error=requests.ConnectionError("no route to host"))

    with pytest.raises(IdentityUnavailable, match="IMDS token"):
        IdentityResolver(session=session).resolve()


def test_http_error_on_instance_id():
    session = _Session({"meta-data/instance-id": _Response("", 500)})

    with pytest.raises(IdentityUnavailable):
        IdentityResolver(session=session).resolve()


@pytest.mark.parametrize("body", ["", "<html>gateway</html>", "i-XYZ", "vol-0123456789abcdef0"])
def test_malformed_instance_id(body):
    session = _Session({"meta-data/instance-id": _Response(body)})

    with pytest.raises(IdentityUnavailable, match="malformed"):
        IdentityResolver(session=session).resolve()


def test_empty_token():
    session = _Session({"meta-data/instance-id": _Response("i-0123456789abcdef0")}, token=_Response(""))

    with pytest.raises(IdentityUnavailable, match="empty token"):
        IdentityResolver(session=session).resolve()


def test_region_lookup():
    session = _Session({"meta-data/placement/region": _Response("eu-west-1")})

    assert IdentityResolver(session=session).region() == "eu-west-1"


def test_resolve_is_single_shot():
    session = _Session({"meta-data/instance-id": _Response("", 503)})

    with pytest.raises(IdentityUnavailable):
        IdentityResolver(session=session).resolve()

    assert [m for m, *_ in session.requests] == ["PUT", "GET"]
