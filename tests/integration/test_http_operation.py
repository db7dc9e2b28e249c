from __future__ import annotations

import httpx
import pytest

from nthchance import AbortController, AbortError, Return, RetryOptions, Stop, TryAgain, wrap

BASE_URL = "https://service.test"


def make_transport(statuses: list[int]) -> tuple[httpx.MockTransport, list[httpx.Request]]:
    """Create a transport answering with the given status codes in
    order."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        status = statuses[min(len(requests), len(statuses)) - 1]
        return httpx.Response(status, json={"attempt": len(requests)})

    return httpx.MockTransport(handler), requests


###############################################
#     Tests with an asynchronous HTTP call    #
###############################################


@pytest.mark.asyncio
async def test_http_call_recovers_after_server_errors() -> None:
    transport, requests = make_transport([503, 502, 200])

    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:

        async def fetch(path: str) -> dict:
            response = await client.get(path)
            response.raise_for_status()
            return response.json()

        fn = wrap(fetch).configure(RetryOptions(retries=3, delay_multiplier=1))
        assert await fn("/items") == {"attempt": 3}

    assert len(requests) == 3
    assert [type(record.error) for record in fn.executions[:2]] == [
        httpx.HTTPStatusError,
        httpx.HTTPStatusError,
    ]
    assert fn.executions[-1].returned_value == {"attempt": 3}


@pytest.mark.asyncio
async def test_http_call_gives_up() -> None:
    transport, requests = make_transport([500])

    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:

        async def fetch(path: str) -> dict:
            response = await client.get(path)
            response.raise_for_status()
            return response.json()

        fn = wrap(fetch).configure(retries=2, delay_multiplier=1)
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await fn("/items")

    assert exc_info.value.response.status_code == 500
    assert len(requests) == 3


@pytest.mark.asyncio
async def test_http_call_with_status_decider() -> None:
    """Test a decider that only retries on server errors and switches
    to a fallback path."""
    transport, requests = make_transport([503, 404])

    def decider(fn) -> TryAgain | Stop | Return:
        last = fn.executions[-1]
        if last.succeeded:
            return Return(last.returned_value)
        if last.error.response.status_code >= 500:
            return TryAgain(delay=1, args=("/fallback",))
        return Stop(last.error)

    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:

        async def fetch(path: str) -> dict:
            response = await client.get(path)
            response.raise_for_status()
            return response.json()

        fn = wrap(fetch).configure(decider)
        with pytest.raises(httpx.HTTPStatusError):
            await fn("/items")

    assert [request.url.path for request in requests] == ["/items", "/fallback"]


#################################################
#     Tests with a synchronous HTTP call        #
#################################################


@pytest.mark.asyncio
async def test_sync_http_call() -> None:
    transport, requests = make_transport([503, 200])

    with httpx.Client(transport=transport, base_url=BASE_URL) as client:

        def fetch(path: str) -> int:
            response = client.get(path)
            response.raise_for_status()
            return response.status_code

        fn = wrap(fetch).configure(RetryOptions(delay_multiplier=1))
        assert await fn("/health") == 200

    assert len(requests) == 2


@pytest.mark.asyncio
async def test_http_call_aborted_by_signal() -> None:
    controller = AbortController()
    transport, requests = make_transport([503])

    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:

        async def fetch(path: str) -> dict:
            response = await client.get(path)
            if len(requests) == 2:
                controller.abort("shutting down")
            response.raise_for_status()
            return response.json()

        fn = wrap(fetch).configure(RetryOptions(retries=10, delay_multiplier=1), controller.signal)
        with pytest.raises(AbortError, match=r"Aborted: shutting down"):
            await fn("/items")

    assert len(requests) == 2
    assert fn.executions[-1].aborted
    assert fn.executions[-1].decision is None
