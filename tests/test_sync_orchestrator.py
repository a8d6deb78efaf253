from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from bling_wix_sync.clients import BlingProductsClient, WixIngestionClient
from bling_wix_sync.core.config import BlingSettings, WixSettings
from bling_wix_sync.core.errors import AuthError, SyncInProgressError
from bling_wix_sync.models import StockRecord, TokenPair
from bling_wix_sync.schemas import FetchResult, RecordSource, SyncOutcome, SyncState
from bling_wix_sync.services import (
    BlingTokenService,
    ProductFetcher,
    StockCache,
    SyncOrchestrator,
    TokenStore,
    WixPublisher,
)
from bling_wix_sync.utils.http import RetryPolicy
from fakes import FakeBlingCatalog, make_products, server_error

INGEST_URL = "https://shop.example.com/_functions/stock"


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class WixSink:
    def __init__(self) -> None:
        self.batches: list[list[dict]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.batches.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True})


class StubOAuth:
    def __init__(self, *, access_token: str = "at-new", error: AuthError | None = None) -> None:
        self.access_token = access_token
        self.error = error
        self.calls = 0

    async def refresh(self, current_refresh_token: str, redirect_uri=None) -> TokenPair:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return TokenPair(access_token=self.access_token, refresh_token="rt-new")


def _store(access_token: str = "at", refresh_token: str = "rt") -> TokenStore:
    store = TokenStore()
    store.replace(TokenPair(access_token=access_token, refresh_token=refresh_token))
    return store


def _orchestrator(
    catalog,
    sink,
    sleeper,
    *,
    store: TokenStore | None = None,
    oauth: StubOAuth | None = None,
    cache: StockCache | None = None,
    wix_url: str | None = INGEST_URL,
    fetcher=None,
) -> SyncOrchestrator:
    policy = RetryPolicy(max_attempts=2, base_delay_seconds=1.0)
    if fetcher is None:
        fetcher = ProductFetcher(
            BlingProductsClient(
                BlingSettings(BLING_API_BASE_URL="https://bling.test/Api/v3"),
                retry_policy=policy,
                transport=httpx.MockTransport(catalog),
                sleep=sleeper,
            ),
            page_size=100,
            retry_policy=policy,
            connectivity_precheck=False,
            sleep=sleeper,
        )
    publisher = WixPublisher(
        WixIngestionClient(
            WixSettings(WIX_INGEST_URL=wix_url),
            retry_policy=policy,
            transport=httpx.MockTransport(sink),
            sleep=sleeper,
        ),
        batch_size=100,
        sleep=sleeper,
    )
    return SyncOrchestrator(
        token_service=BlingTokenService(store or _store(), oauth or StubOAuth()),
        fetcher=fetcher,
        publisher=publisher,
        cache=cache or StockCache(),
    )


def _cached(count: int, clock: FakeClock | None = None, ttl: float = 600) -> StockCache:
    cache = StockCache(ttl_seconds=ttl, clock=clock or FakeClock())
    cache.put(
        [StockRecord(code=f"CACHED-{i}", description="", quantity=1) for i in range(count)]
    )
    return cache


@pytest.mark.asyncio
async def test_full_run_publishes_every_fetched_record(sleeper) -> None:
    catalog = FakeBlingCatalog({1: make_products(150), 2: make_products(40, start=150)})
    sink = WixSink()
    orchestrator = _orchestrator(catalog, sink, sleeper)

    report = await orchestrator.run()

    assert report.outcome is SyncOutcome.SUCCESS
    assert report.state is SyncState.DONE
    assert report.source is RecordSource.LIVE
    assert report.total_records == 190
    assert report.records_confirmed == 190
    assert report.pages_fetched == 2
    assert [len(batch) for batch in sink.batches] == [100, 90]
    assert orchestrator.state is SyncState.DONE
    assert orchestrator.last_report == report
    assert len(orchestrator.cache.get()) == 190


@pytest.mark.asyncio
async def test_failed_page_downgrades_outcome_to_partial(sleeper) -> None:
    catalog = FakeBlingCatalog(
        {1: make_products(100), 3: make_products(5, start=200)}, failures={2: server_error}
    )
    sink = WixSink()

    report = await _orchestrator(catalog, sink, sleeper).run()

    assert report.outcome is SyncOutcome.PARTIAL
    assert report.pages_failed == 1
    assert report.batches_failed == 0
    assert report.records_confirmed == 105


@pytest.mark.asyncio
async def test_fetch_failure_falls_back_to_fresh_cache(sleeper) -> None:
    catalog = FakeBlingCatalog({}, failures={page: server_error for page in range(1, 4)})
    sink = WixSink()

    report = await _orchestrator(catalog, sink, sleeper, cache=_cached(3)).run()

    assert report.source is RecordSource.CACHE
    assert report.outcome is SyncOutcome.PARTIAL
    assert report.total_records == 3
    assert report.pages_failed == 3
    assert [item["codigo"] for item in sink.batches[0]] == ["CACHED-0", "CACHED-1", "CACHED-2"]


@pytest.mark.asyncio
async def test_fetch_failure_uses_stale_cache_as_last_resort(sleeper) -> None:
    clock = FakeClock(now=0.0)
    cache = _cached(2, clock=clock, ttl=600)
    clock.now = 3600.0
    catalog = FakeBlingCatalog({}, failures={page: server_error for page in range(1, 4)})

    report = await _orchestrator(catalog, WixSink(), sleeper, cache=cache).run()

    assert report.source is RecordSource.STALE_CACHE
    assert report.outcome is SyncOutcome.PARTIAL
    assert report.records_confirmed == 2


@pytest.mark.asyncio
async def test_fetch_failure_without_cache_fails_the_run(sleeper) -> None:
    catalog = FakeBlingCatalog({}, failures={page: server_error for page in range(1, 4)})
    sink = WixSink()
    orchestrator = _orchestrator(catalog, sink, sleeper)

    report = await orchestrator.run()

    assert report.outcome is SyncOutcome.FAILED
    assert report.state is SyncState.FAILED
    assert report.error_type == "no_products_found"
    assert sink.batches == []
    assert orchestrator.state is SyncState.FAILED


@pytest.mark.asyncio
async def test_empty_catalog_has_nothing_to_sync(sleeper) -> None:
    sink = WixSink()

    report = await _orchestrator(FakeBlingCatalog({}), sink, sleeper).run()

    assert report.outcome is SyncOutcome.NOTHING_TO_SYNC
    assert report.state is SyncState.DONE
    assert sink.batches == []


@pytest.mark.asyncio
async def test_missing_token_fails_with_config_error(sleeper) -> None:
    catalog = FakeBlingCatalog({1: make_products(1)})

    report = await _orchestrator(catalog, WixSink(), sleeper, store=TokenStore()).run()

    assert report.outcome is SyncOutcome.FAILED
    assert report.error_type == "config_error"
    assert catalog.requests == []


@pytest.mark.asyncio
async def test_invalid_grant_fails_and_clears_tokens(sleeper) -> None:
    catalog = FakeBlingCatalog({1: make_products(1)})
    store = TokenStore(bootstrap_refresh_token="rt-revoked")
    oauth = StubOAuth(error=AuthError("revoked", error_type="invalid_grant", status_code=400))

    report = await _orchestrator(catalog, WixSink(), sleeper, store=store, oauth=oauth).run()

    assert report.outcome is SyncOutcome.FAILED
    assert report.error_type == "invalid_grant"
    assert oauth.calls == 1
    assert store.get() is None
    assert catalog.requests == []


@pytest.mark.asyncio
async def test_rejected_access_token_is_refreshed_mid_run(sleeper) -> None:
    catalog = FakeBlingCatalog({1: make_products(4)}, valid_tokens={"at-new"})
    store = _store(access_token="at-old")
    oauth = StubOAuth(access_token="at-new")

    report = await _orchestrator(catalog, WixSink(), sleeper, store=store, oauth=oauth).run()

    assert report.outcome is SyncOutcome.SUCCESS
    assert oauth.calls == 1
    assert store.get().access_token == "at-new"
    assert store.get().refresh_token == "rt-new"


@pytest.mark.asyncio
async def test_missing_wix_endpoint_fails_after_fetch(sleeper) -> None:
    catalog = FakeBlingCatalog({1: make_products(3)})

    report = await _orchestrator(catalog, WixSink(), sleeper, wix_url=None).run()

    assert report.outcome is SyncOutcome.FAILED
    assert report.error_type == "config_error"
    assert report.total_records == 3
    assert report.source is RecordSource.LIVE


class GatedFetcher:
    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch_catalog(self, access_token, *, refresh_access_token=None) -> FetchResult:
        self.started.set()
        await self.release.wait()
        return FetchResult(records=[StockRecord(code="A", quantity=1)], pages_fetched=1)


@pytest.mark.asyncio
async def test_overlapping_run_is_rejected(sleeper) -> None:
    fetcher = GatedFetcher()
    sink = WixSink()
    orchestrator = _orchestrator(None, sink, sleeper, fetcher=fetcher)

    first = asyncio.create_task(orchestrator.run())
    await fetcher.started.wait()

    assert orchestrator.running
    assert orchestrator.state is SyncState.FETCHING
    with pytest.raises(SyncInProgressError):
        await orchestrator.run()

    fetcher.release.set()
    report = await first

    assert report.outcome is SyncOutcome.SUCCESS
    assert not orchestrator.running
    assert len(sink.batches) == 1


@pytest.mark.asyncio
async def test_token_endpoint_outage_mid_fetch_falls_back_to_cache(sleeper) -> None:
    catalog = FakeBlingCatalog({1: make_products(3)}, valid_tokens=set())
    sink = WixSink()
    oauth = StubOAuth(error=AuthError("down", error_type="network"))

    report = await _orchestrator(catalog, sink, sleeper, oauth=oauth, cache=_cached(5)).run()

    assert report.outcome is SyncOutcome.PARTIAL
    assert report.source is RecordSource.CACHE
    assert report.records_confirmed == 5
    assert oauth.calls == 2
    assert len(sink.batches[0]) == 5


@pytest.mark.asyncio
async def test_repeated_token_rejection_falls_back_to_cache(sleeper) -> None:
    catalog = FakeBlingCatalog({1: make_products(3)}, valid_tokens=set())

    report = await _orchestrator(catalog, WixSink(), sleeper, cache=_cached(2)).run()

    assert report.outcome is SyncOutcome.PARTIAL
    assert report.source is RecordSource.CACHE


@pytest.mark.asyncio
async def test_invalid_grant_mid_fetch_fails_even_with_cache(sleeper) -> None:
    catalog = FakeBlingCatalog({1: make_products(3)}, valid_tokens=set())
    sink = WixSink()
    oauth = StubOAuth(error=AuthError("revoked", error_type="invalid_grant", status_code=400))

    report = await _orchestrator(catalog, sink, sleeper, oauth=oauth, cache=_cached(5)).run()

    assert report.outcome is SyncOutcome.FAILED
    assert report.error_type == "invalid_grant"
    assert sink.batches == []
