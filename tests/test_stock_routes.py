import json

import httpx

from conftest import stock


def test_analyze_get(client, upstream):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/scan-cached"
        return httpx.Response(200, json={"results": [stock("AAA"), stock("BBB")]})

    upstream(handler)
    r = client.get("/api/analyze")
    assert r.status_code == 200
    assert [s["Symbol"] for s in r.json()] == ["AAA", "BBB"]
    assert r.headers["cache-control"] == "public, s-maxage=3600, stale-while-revalidate=86400"


def test_analyze_rejects_whole_batch(client, upstream):
    upstream(lambda request: httpx.Response(200, json={"results": [stock("AAA"), {"Symbol": "BBB"}]}))
    r = client.get("/api/analyze")
    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "Failed to fetch stock data"
    assert "Invalid stock data structure" in body["message"]


def test_analyze_missing_results(client, upstream):
    upstream(lambda request: httpx.Response(200, json={"data": []}))
    r = client.get("/api/analyze")
    assert r.status_code == 500
    assert r.json()["message"] == "API response does not contain results array"


def test_analyze_post_forwards_filters(client, upstream):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"results": [stock()]})

    upstream(handler)
    assert client.post("/api/analyze", json={"sector": "IT"}).status_code == 200
    # an unparseable body is treated as "no filters"
    assert client.post("/api/analyze", content="oops").status_code == 200
    assert seen == [{"sector": "IT"}, {}]


def test_scan_passthrough_forwards_query(client, upstream):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/stocks/scan"
        assert request.url.params.multi_items() == [("scenario", "breakout"), ("limit", "5")]
        return httpx.Response(200, json={"data": [stock()], "total": 1})

    upstream(handler)
    r = client.get("/api/stocks/scan?scenario=breakout&limit=5")
    assert r.status_code == 200
    assert r.json()["total"] == 1
    assert r.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    assert r.headers["pragma"] == "no-cache"
    assert r.headers["expires"] == "0"


def test_scan_passthrough_mirrors_upstream_status(client, upstream):
    upstream(lambda request: httpx.Response(502))
    r = client.get("/api/stocks/scan")
    assert r.status_code == 502
    body = r.json()
    assert body["error"] == "Stock scan API error"
    assert body["message"] == "API returned 502: Bad Gateway"
    assert "details" in body


def test_scan_passthrough_connection_failed(client, upstream):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("ECONNREFUSED", request=request)

    upstream(handler)
    r = client.get("/api/stocks/scan?limit=1")
    assert r.status_code == 503
    assert r.json()["error"] == "Connection failed"
    assert r.json()["message"] == "Could not connect to the stock analysis API server"


def test_filter_scenario_mode(client, upstream):
    def handler(request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        assert params == {"scenario": "high_score", "limit": "15", "min_score": "70"}
        return httpx.Response(200, json={"data": [stock("AAA"), stock("BBB")], "total": 9})

    upstream(handler)
    body = {"scenario": "high_score", "minScore": 70, "limit": 15, "minDrawdown": 10, "marketCap": "large"}
    r = client.post("/api/stocks/filter", json=body)
    assert r.status_code == 200
    out = r.json()
    assert out["ok"] is True
    assert out["filterName"] == "High Score Stocks"
    assert out["total"] == 9
    assert len(out["data"]) == 2
    assert out["notification"] == "Found 2 stocks matching criteria (9 total available)"


def test_filter_advanced_mode_total_fallback(client, upstream):
    def handler(request: httpx.Request) -> httpx.Response:
        assert "max_score" not in request.url.params
        assert request.url.params["min_drawdown"] == "5"
        return httpx.Response(200, json={"data": [stock()]})

    upstream(handler)
    r = client.post("/api/stocks/filter", json={"minScore": 0, "maxScore": 100, "minDrawdown": 5, "limit": 50})
    out = r.json()
    assert out["filterName"] == "Custom Filter"
    assert out["total"] == 1


def test_filter_failure_returns_empty_result(client, upstream):
    upstream(lambda request: httpx.Response(500))
    r = client.post("/api/stocks/filter", json={"scenario": "breakout", "minVolume": 2.0, "limit": 20})
    assert r.status_code == 200
    out = r.json()
    assert out["ok"] is False
    assert out["data"] == []
    assert out["total"] == 0
    assert out["filterName"] == "Breakout Candidates"
    assert out["notification"] == "Failed to fetch stocks: API returned 500: Internal Server Error"


def test_filter_malformed_response(client, upstream):
    upstream(lambda request: httpx.Response(200, json=["not", "an", "object"]))
    out = client.post("/api/stocks/filter", json={"scenario": "consolidation"}).json()
    assert out["ok"] is False
    assert out["data"] == []


def test_filter_non_object_rows(client, upstream):
    upstream(lambda request: httpx.Response(200, json={"data": [1, 2], "total": 2}))
    r = client.post("/api/stocks/filter", json={"scenario": "consolidation"})
    assert r.status_code == 200
    out = r.json()
    assert out["ok"] is False
    assert out["data"] == []
    assert out["total"] == 0
    assert out["notification"].startswith("Failed to fetch stocks: ")


def test_filter_rejects_unknown_market_cap(client):
    r = client.post("/api/stocks/filter", json={"marketCap": "huge"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


def test_scenario_catalog(client):
    r = client.get("/api/stocks/scenarios")
    assert r.status_code == 200
    body = r.json()
    assert body["defaultScenario"] == "perfect_momentum"
    ids = [s["id"] for s in body["scenarios"]]
    assert ids == ["perfect_momentum", "high_score", "consolidation", "optimal_drawdown", "breakout"]
    high = body["scenarios"][1]
    assert high["filters"] == {"scenario": "high_score", "limit": 15, "minScore": 70.0}
    assert body["defaultFilters"]["maxDrawdown"] == 50
    assert body["viewAllFilters"] == {"limit": 50, "sortBy": "Momentum Score", "sortOrder": "desc"}
