"""
Tests for the static asset server.

Every response, including errors, must carry the cross-origin isolation
headers.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import coordinator
from coordinator.config import DEFAULT_PUBLIC_DIR
from coordinator.server import app, create_app, CROSS_ORIGIN_ISOLATION_HEADERS


def assert_isolated(response):
    assert response.headers["cross-origin-opener-policy"] == "same-origin"
    assert response.headers["cross-origin-embedder-policy"] == "require-corp"


@pytest.fixture
def public_dir(tmp_path):
    """Temporary public directory with a page and a worker script."""
    (tmp_path / "index.html").write_text("<html><body>bench</body></html>")
    tests_dir = tmp_path / "tests"
    tests_dir.mkdir()
    (tests_dir / "worker.js").write_text("self.onmessage = () => self.postMessage(true)")
    return tmp_path


@pytest.fixture
def client(public_dir):
    """Create test client over the temporary public directory."""
    return TestClient(create_app(str(public_dir)))


class TestStaticFiles:
    """Test static file serving."""

    def test_index_page(self, client):
        """Test / serves index.html."""
        response = client.get("/")
        assert response.status_code == 200
        assert "bench" in response.text
        assert_isolated(response)

    def test_nested_asset(self, client):
        """Test assets in subdirectories."""
        response = client.get("/tests/worker.js")
        assert response.status_code == 200
        assert "postMessage" in response.text
        assert_isolated(response)

    def test_missing_file_still_isolated(self, client):
        """Test 404 responses carry the headers too."""
        response = client.get("/does-not-exist.js")
        assert response.status_code == 404
        assert_isolated(response)


class TestHealth:
    """Test health endpoint."""

    def test_health_endpoint(self, client):
        """Test health check."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
        assert_isolated(response)


class TestDefaultApp:
    """Test the module-level app over the bundled page."""

    def test_page_ships_inside_package(self):
        """Test the default directory is package data of coordinator."""
        public = Path(DEFAULT_PUBLIC_DIR)
        assert public.parent == Path(coordinator.__file__).resolve().parent
        assert (public / "index.html").is_file()

    def test_bundled_index(self):
        """Test the bundled benchmark page is served."""
        response = TestClient(app).get("/")
        assert response.status_code == 200
        assert_isolated(response)

    def test_header_values(self):
        """Test the exact header policy."""
        assert CROSS_ORIGIN_ISOLATION_HEADERS == {
            "Cross-Origin-Opener-Policy": "same-origin",
            "Cross-Origin-Embedder-Policy": "require-corp",
        }
