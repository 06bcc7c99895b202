"""HTTP-level tests for the Sitespeed Result Service."""
from conftest import SCREENSHOT_BYTES
from core.storage import result_key, screenshot_key

URLS = {"urls": ["https://example.com"]}


def _analyze(client, identifier="abc", body=URLS):
    return client.post(f"/api/result/{identifier}", json=body)


class TestServiceInfo:
    """Test suite for informational endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "Sitespeed Result Service"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAnalyzeEndpoint:
    """Test suite for POST /api/result/{id}."""

    def test_returns_camel_case_metrics(self, client, store):
        response = _analyze(client)

        assert response.status_code == 200
        assert response.json() == {
            "ttfb": 120.5,
            "fullyLoaded": 2450.0,
            "largestContentfulPaint": 980.0,
            "firstContentfulPaint": 640.0,
            "cumulativeLayoutShift": 0.05,
            "transferSize": 524288.0,
        }
        assert result_key("abc") in store.objects
        assert screenshot_key("abc") in store.objects

    def test_too_many_urls(self, client, runner):
        response = _analyze(client, body={"urls": ["https://example.com"] * 6})

        assert response.status_code == 400
        assert response.json()["error"] == "URLs must be between 1 and 5 items"
        assert runner.calls == []

    def test_invalid_url(self, client):
        response = _analyze(client, body={"urls": ["nope"]})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid URL: nope"

    def test_malformed_body(self, client):
        response = client.post(
            "/api/result/abc", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid Request Body"}

    def test_invalid_identifier(self, client, runner):
        response = _analyze(client, identifier="a..b")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid ID"
        assert runner.calls == []

    def test_backslash_identifier(self, client):
        response = _analyze(client, identifier="a%5Cb")
        assert response.status_code == 400

    def test_tool_failure_exposes_details(self, client, runner):
        runner.exit_code = 2
        runner.stderr = "net::ERR_NAME_NOT_RESOLVED"

        response = _analyze(client)
        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to run sitespeed analysis",
            "details": "net::ERR_NAME_NOT_RESOLVED",
        }

    def test_details_hidden_when_disabled(self, client, runner, services):
        services.settings.EXPOSE_ERROR_DETAILS = False
        runner.exit_code = 2
        runner.stderr = "secret stack trace"

        response = _analyze(client)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to run sitespeed analysis"}


class TestResultFiles:
    """Test suite for GET /result/{id}/{path}."""

    def test_index_served_by_default(self, client):
        _analyze(client)

        for url in ("/result/abc", "/result/abc/"):
            response = client.get(url)
            assert response.status_code == 200
            assert response.text == "<html>summary</html>"
            assert response.headers["content-type"].startswith("text/html")

    def test_bare_route_ignores_path_query(self, client):
        _analyze(client)

        response = client.get("/result/abc", params={"path": "assets/style.css"})
        assert response.status_code == 200
        assert response.text == "<html>summary</html>"

    def test_file_with_headers(self, client):
        _analyze(client)

        response = client.get("/result/abc/assets/style.css")
        assert response.status_code == 200
        assert response.text == "body { color: #333; }"
        assert response.headers["content-type"].startswith("text/css")
        assert response.headers["cache-control"] == "public, max-age=604800"
        assert response.headers["content-length"] == str(len("body { color: #333; }"))
        assert response.headers["last-modified"].endswith("GMT")

    def test_directory_serves_its_index(self, client):
        _analyze(client)

        response = client.get("/result/abc/pages/example_com")
        assert response.status_code == 200
        assert response.text == "<html>page</html>"

    def test_missing_file(self, client):
        _analyze(client)
        assert client.get("/result/abc/nope.js").status_code == 404

    def test_unknown_result(self, client):
        response = client.get("/result/unknown/index.html")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_reanalysis_replaces_cached_result(self, client, runner):
        _analyze(client)
        assert client.get("/result/abc/").text == "<html>summary</html>"

        original_run = runner.run

        async def run_v2(urls, output_dir):
            result = await original_run(urls, output_dir)
            (output_dir / "index.html").write_text("<html>v2</html>")
            return result

        runner.run = run_v2
        _analyze(client)
        assert client.get("/result/abc/").text == "<html>v2</html>"


class TestScreenshot:
    """Test suite for GET /screenshot/{id}."""

    def test_streams_png(self, client):
        _analyze(client)

        response = client.get("/screenshot/abc")
        assert response.status_code == 200
        assert response.content == SCREENSHOT_BYTES
        assert response.headers["content-type"] == "image/png"
        assert response.headers["etag"] == f'"etag-{len(SCREENSHOT_BYTES)}"'
        assert response.headers["cache-control"] == "public, max-age=604800"
        assert response.headers["last-modified"] == "Wed, 01 May 2024 12:00:00 GMT"

    def test_missing_screenshot(self, client):
        assert client.get("/screenshot/abc").status_code == 404


class TestDelete:
    """Test suite for DELETE /api/result/{id}."""

    def test_delete_removes_everything(self, client, store, services):
        _analyze(client)
        assert client.get("/result/abc/").status_code == 200
        assert services.cache.is_cached("abc")

        response = client.delete("/api/result/abc")
        assert response.status_code == 200
        assert store.objects == {}
        assert not services.cache.is_cached("abc")
        assert client.get("/result/abc/").status_code == 404
        assert client.get("/screenshot/abc").status_code == 404

    def test_delete_is_idempotent(self, client):
        assert client.delete("/api/result/never-existed").status_code == 200
        assert client.delete("/api/result/never-existed").status_code == 200

    def test_delete_invalid_identifier(self, client):
        assert client.delete("/api/result/a..b").status_code == 400
