"""Test configuration and shared fixtures.

All service traffic goes to an in-process fake behind ``httpx.MockTransport``.
"""
from urllib.parse import unquote

import httpx
import pytest

from python_w3up import Agent, AgentData, Client, Connection, PollingClaimListener, ServiceConf
from python_w3up.delegation import Delegation
from python_w3up.transport import ARCHIVE_CONTENT_TYPE

SERVICE_DID = "did:web:test.web3.storage"
ACCESS_URL = "https://access.test"
UPLOAD_URL = "https://upload.test"
BLOB_URL = "https://blobs.test"


class FakeService:
    """Records invocations and answers them the way the upload/access services do."""

    def __init__(self, did=SERVICE_DID):
        self.did = did
        self.invocations = []
        self.puts = {}
        self.stored = set()
        self.claims = {}
        self.errors = {}
        self.statuses = {}
        self.require_proofs = False
        self.claim_polls = 0

    def abilities(self):
        return [inv.capabilities[0]["can"] for inv in self.invocations]

    def connection(self, url):
        return Connection(self.did, url, transport=httpx.MockTransport(self.handler))

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return self._invoke(Delegation.extract(request.content))
        if request.method == "PUT":
            self.puts[str(request.url)] = request.content
            self.stored.add(request.url.path.strip("/"))
            return httpx.Response(200)
        if request.method == "GET" and "/voucher/claim/" in request.url.path:
            self.claim_polls += 1
            space = unquote(request.url.path.rsplit("/", 1)[-1])
            if space in self.claims:
                return httpx.Response(
                    200, content=self.claims[space], headers={"Content-Type": ARCHIVE_CONTENT_TYPE}
                )
            return httpx.Response(404, text="no claim yet")
        return httpx.Response(405)

    def _invoke(self, inv: Delegation) -> httpx.Response:
        self.invocations.append(inv)
        cap = inv.capabilities[0]
        can = cap["can"]
        if can in self.statuses:
            return httpx.Response(self.statuses[can], text=f"{can} failed")
        if can in self.errors:
            return httpx.Response(200, json={"error": self.errors[can]})
        if self.require_proofs and not inv.proofs:
            return httpx.Response(
                200, json={"error": {"name": "Unauthorized", "message": f"Claim {can} is not authorized"}}
            )
        if can == "store/add":
            link = cap["nb"]["link"]
            if link in self.stored:
                return httpx.Response(200, json={"ok": {"status": "done", "link": link}})
            return httpx.Response(
                200,
                json={"ok": {"status": "upload", "link": link, "url": f"{BLOB_URL}/{link}",
                             "headers": {"x-amz-checksum-sha256": link}}},
            )
        if can == "upload/add":
            return httpx.Response(200, json={"ok": cap["nb"]})
        if can in ("store/list", "upload/list"):
            return httpx.Response(200, json={"ok": {"results": [], "size": 0}})
        if can == "space/info":
            return httpx.Response(200, json={"ok": {"did": cap["with"]}})
        return httpx.Response(200, json={"ok": {}})


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def service_conf(service):
    return ServiceConf(access=service.connection(ACCESS_URL), upload=service.connection(UPLOAD_URL))


def make_agent(service_conf, path=None):
    return Agent(
        AgentData.create(path=path),
        connection=service_conf.access,
        claims=PollingClaimListener(service_conf.access, interval=0.01),
    )


@pytest.fixture
def agent(service_conf):
    return make_agent(service_conf)


@pytest.fixture
def client(agent, service_conf):
    return Client(agent, service_conf)


@pytest.fixture
def new_agent(service_conf):
    """Factory for additional agents talking to the same fake service."""
    return lambda path=None: make_agent(service_conf, path)


@pytest.fixture
def other_service():
    """A second upload service with its own DID, for connection overrides."""
    return FakeService(did="did:web:other.test")
