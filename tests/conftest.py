from __future__ import annotations

from typing import Iterator

import pytest

from stub_services import USER_PAYLOAD, VIDEO_PAYLOAD, StubResponse, StubServer


@pytest.fixture
def stub_server() -> Iterator[StubServer]:
    server = StubServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def happy_routes(stub_server: StubServer) -> StubServer:
    stub_server.route("/users", lambda method, path, body: StubResponse(payload={"data": USER_PAYLOAD}))
    stub_server.route("/videos", lambda method, path, body: StubResponse(payload={"data": VIDEO_PAYLOAD}))
    stub_server.route("/index", lambda method, path, body: StubResponse(status=201))
    return stub_server
