import io
import json

import pytest
import requests

from server import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def make_upstream():
    def _make(status=200, body=None, content_type="application/json"):
        response = requests.Response()
        response.status_code = status
        if "json" in content_type:
            content = json.dumps(body)
        else:
            content = body or ""
        response.raw = io.BytesIO(content.encode("utf-8"))
        response.encoding = "utf-8"
        response.headers["Content-Type"] = content_type
        return response
    return _make
