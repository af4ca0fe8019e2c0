# === NAVMAP v1 ===
# {
#   "module": "tests.test_property_based",
#   "purpose": "Property-based coverage for status checks, form encoding, and retry bounds",
#   "sections": [
#     {"id": "test-status-membership", "name": "test_status_membership", "anchor": "function-test-status-membership", "kind": "function"},
#     {"id": "test-form-encoding-round-trips", "name": "test_form_encoding_round_trips", "anchor": "function-test-form-encoding-round-trips", "kind": "function"},
#     {"id": "test-retry-needs-k-plus-one-attempts", "name": "test_retry_needs_k_plus_one_attempts", "anchor": "function-test-retry-needs-k-plus-one-attempts", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Property-based tests covering status checks, form encoding, and retry bounds."""

from __future__ import annotations

from typing import List
from urllib.parse import parse_qs

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

from HttpAgent import (
    CancellationToken,
    UnexpectedStatusError,
    cancel_token,
    expected_status_codes,
    form_req,
    get,
    post,
    retry,
    use_client,
)
from HttpAgent.request_options import encode_form

status_codes = st.integers(min_value=200, max_value=599)
form_keys = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=8)
form_values = st.text(min_size=1, max_size=12).filter(lambda s: s.strip() == s and "\x00" not in s)


class _NoSleepToken(CancellationToken):
    def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


@settings(deadline=None)
@given(status=status_codes, expected=st.lists(status_codes, min_size=1, max_size=4))
def test_status_membership(status, expected):
    client = _client(lambda request: httpx.Response(status))
    try:
        agent = get("https://api.example.com/", use_client(client), expected_status_codes(expected))
        try:
            agent.do()
            accepted = True
        except UnexpectedStatusError as exc:
            accepted = False
            assert exc.status_code == status
            assert exc.expected_status_codes == tuple(expected)
        assert accepted == (status in expected)
    finally:
        client.close()


@settings(deadline=None)
@given(values=st.dictionaries(form_keys, form_values, min_size=1, max_size=5))
def test_form_encoding_round_trips(values):
    seen: List[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    client = _client(_handler)
    try:
        get("https://api.example.com/search", use_client(client), form_req(values)).do()
        post("https://api.example.com/search", use_client(client), form_req(values)).do()
    finally:
        client.close()

    encoded = encode_form(values)
    assert seen[0].url.query.decode("ascii") == encoded
    assert seen[1].content.decode("ascii") == encoded
    assert seen[1].url.query == b""
    decoded = {key: items[0] for key, items in parse_qs(encoded, keep_blank_values=True).items()}
    assert decoded == values
    assert list(decoded) == sorted(values)


@settings(max_examples=25, deadline=None)
@given(failures=st.integers(min_value=0, max_value=4), extra=st.integers(min_value=0, max_value=2))
def test_retry_needs_k_plus_one_attempts(failures, extra):
    calls = {"n": 0}

    def _handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(500 if calls["n"] <= failures else 200)

    client = _client(_handler)
    try:
        get(
            "https://api.example.com/",
            use_client(client),
            cancel_token(_NoSleepToken()),
            retry(attempts=failures + 1 + extra),
        ).do()
    finally:
        client.close()

    assert calls["n"] == failures + 1
