from urllib.parse import parse_qs, urlparse


def test_health_routes(client):
    r = client.get("/api/v1/diag/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert client.get("/healthz").json() == {"status": "ok"}


def test_diag_config_has_no_secrets(client):
    body = client.get("/api/v1/diag/config").json()
    assert body["ok"] is True
    assert body["scan_api_base"] == "http://scan.test"
    assert "DATABASE_URL" not in body and "database_url" not in body


def test_request_id_header(client):
    r = client.get("/healthz")
    assert len(r.headers["X-Request-ID"]) == 16
    r2 = client.get("/healthz", headers={"X-Request-ID": "trace-123"})
    assert r2.headers["X-Request-ID"] == "trace-123"


def test_metrics_exposed(client):
    client.get("/healthz")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "http_request" in r.text


def test_chart_config(client):
    r = client.get("/api/charts/reliance", params={"timeframe": "1y"})
    assert r.status_code == 200
    body = r.json()
    assert body["symbol"] == "RELIANCE"
    assert body["timeframe"] == "1Y"
    assert body["interval"] == "12M"
    assert [t["value"] for t in body["timeframes"]] == ["1D", "1W", "1M", "3M", "1Y"]
    qs = parse_qs(urlparse(body["embedUrl"]).query)
    assert qs["symbol"] == ["RELIANCE"]
    assert qs["interval"] == ["12M"]


def test_chart_unknown_timeframe_falls_back(client):
    body = client.get("/api/charts/TCS", params={"timeframe": "5Y"}).json()
    assert body["timeframe"] == "1D"
    assert body["interval"] == "1"
