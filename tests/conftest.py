"""Shared fixtures: an in-memory fake of the M7350 web gateway."""

import base64
import itertools
import hashlib
import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from Crypto.Cipher import AES, PKCS1_v1_5
from Crypto.PublicKey import RSA
from Crypto.Util.Padding import pad, unpad

from tplink_m7350.client import TPLinkM7350

Reply = Dict[str, Any]


def md5_hex(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


class FakeModem:
    """Answers auth_cgi/web_cgi requests the way the modem does.

    Replies for web_cgi are registered per (module, action) with
    :meth:`route`; unrouted requests answer ``{"result": 0}``.
    ``latency`` delays every reply and ``rotate_token`` hands out a new
    token on each login, which exposes callers racing on one session.
    """

    def __init__(
        self,
        password: str = "admin",
        username: str = "admin",
        nonce: str = "4c2d9a",
        token: str = "session-token",
        rsa_key: Optional[RSA.RsaKey] = None,
        seq: int = 1000,
        latency: float = 0.0,
        rotate_token: bool = False,
    ) -> None:
        self.password = password
        self.username = username
        self.nonce = nonce
        self.token = token
        self.rsa_key = rsa_key
        self.seq = seq
        self.latency = latency
        self.rotate_token = rotate_token
        self._logins = itertools.count(1)
        self.active_token: Optional[str] = None
        self.failed_attempts = 0
        self.requests: List[Dict[str, Any]] = []
        self.signatures: List[Dict[str, str]] = []
        self.routes: Dict[Tuple[str, int], Any] = {}
        self._aes: Optional[Tuple[bytes, bytes]] = None

    @property
    def encrypted(self) -> bool:
        return self.rsa_key is not None

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def route(self, module: str, action: int, *replies: Any) -> None:
        """Register replies; the last one repeats. A callable gets the request."""
        self.routes[(module, action)] = list(replies)

    def calls(self, module: str, action: Optional[int] = None) -> List[Dict[str, Any]]:
        return [
            r for r in self.requests
            if r.get("module") == module and (action is None or r.get("action") == action)
        ]

    # HTTP

    def handle(self, request: httpx.Request) -> httpx.Response:
        if self.latency:
            time.sleep(self.latency)
        raw = json.loads(request.content)
        wrapped = self.encrypted and "sign" in raw
        body = self._unwrap(raw) if wrapped else raw
        self.requests.append(body)

        if request.url.path == "/cgi-bin/auth_cgi":
            reply = self._auth(body)
        elif request.url.path == "/cgi-bin/web_cgi":
            reply = self._web(body)
        else:
            return httpx.Response(404)

        if wrapped:
            return httpx.Response(200, text=self._aes_encrypt(json.dumps(reply)))
        return httpx.Response(200, json=reply)

    # Encrypted transport

    def _unwrap(self, raw: Dict[str, str]) -> Dict[str, Any]:
        assert self.rsa_key is not None
        cipher = PKCS1_v1_5.new(self.rsa_key)
        size = self.rsa_key.size_in_bytes()
        sign_bytes = bytes.fromhex(raw["sign"])
        plain = b"".join(
            cipher.decrypt(sign_bytes[i:i + size], None)
            for i in range(0, len(sign_bytes), size)
        ).decode("utf-8")
        parts = dict(part.split("=", 1) for part in plain.split("&"))
        self.signatures.append(parts)

        if "key" in parts:
            self._aes = (parts["key"].encode(), parts["iv"].encode())
        assert parts["h"] == md5_hex(f"{self.username}{self.password}")
        assert int(parts["s"]) == self.seq + len(raw["data"])
        return json.loads(self._aes_decrypt(raw["data"]))

    def _aes_encrypt(self, text: str) -> str:
        assert self._aes is not None
        cipher = AES.new(self._aes[0], AES.MODE_CBC, self._aes[1])
        return base64.b64encode(cipher.encrypt(pad(text.encode(), AES.block_size))).decode()

    def _aes_decrypt(self, data: str) -> str:
        assert self._aes is not None
        cipher = AES.new(self._aes[0], AES.MODE_CBC, self._aes[1])
        return unpad(cipher.decrypt(base64.b64decode(data)), AES.block_size).decode()

    # Endpoints

    def _auth(self, body: Dict[str, Any]) -> Reply:
        action = body.get("action")
        if action == 0:
            reply: Reply = {"authedIP": "0.0.0.0", "nonce": self.nonce, "result": 1}
            if self.rsa_key is not None:
                reply["rsaMod"] = format(self.rsa_key.n, "x")
                reply["rsaPubKey"] = format(self.rsa_key.e, "x")
                reply["seqNum"] = self.seq
            return reply
        if action == 1:
            if body.get("digest") == md5_hex(f"{self.password}:{self.nonce}"):
                if self.rotate_token:
                    self.token = f"session-token-{next(self._logins)}"
                self.active_token = self.token
                return {"token": self.token, "authedIP": "192.168.0.100", "factoryDefault": "0", "result": 0}
            self.failed_attempts += 1
            return {"result": 1}
        if action == 2:
            return {"attempt": self.failed_attempts, "result": 0}
        if action == 3:
            if body.get("token") != self.active_token:
                return {"result": 2}
            self.active_token = None
            return {"result": 0}
        if action == 4:
            if body.get("token") != self.active_token:
                return {"result": -3}
            if body.get("password") != self.password:
                return {"result": 1}
            self.password = body["newPassword"]
            return {"result": 0}
        return {"result": 2}

    def _web(self, body: Dict[str, Any]) -> Reply:
        if self.active_token is None or body.get("token") != self.active_token:
            return {"result": -3}
        replies = self.routes.get((body.get("module"), body.get("action")))
        if not replies:
            return {"result": 0}
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if callable(reply):
            return reply(body)
        return dict(reply)


def paged_reply(field: str, items: List[Dict[str, Any]]) -> Callable[[Dict[str, Any]], Reply]:
    """Serve ``items`` eight per page, like the modem's paged lists."""

    def reply(body: Dict[str, Any]) -> Reply:
        per_page = body["amountPerPage"]
        start = (body["pageNumber"] - 1) * per_page
        return {"totalNumber": len(items), field: items[start:start + per_page], "result": 0}

    return reply


@pytest.fixture
def fake_modem() -> FakeModem:
    return FakeModem()


@pytest.fixture
def modem(fake_modem: FakeModem) -> TPLinkM7350:
    return TPLinkM7350("192.168.0.1", password="admin", transport=fake_modem.transport())


@pytest.fixture(scope="session")
def rsa_key() -> RSA.RsaKey:
    return RSA.generate(1024)


@pytest.fixture
def encrypted_fake_modem(rsa_key: RSA.RsaKey) -> FakeModem:
    return FakeModem(rsa_key=rsa_key)


@pytest.fixture
def encrypted_modem(encrypted_fake_modem: FakeModem) -> TPLinkM7350:
    return TPLinkM7350(
        "192.168.0.1",
        password="admin",
        encrypted=True,
        transport=encrypted_fake_modem.transport(),
    )


@pytest.fixture
def paged() -> Callable[[str, List[Dict[str, Any]]], Callable[[Dict[str, Any]], Reply]]:
    return paged_reply
