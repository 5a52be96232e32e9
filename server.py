import logging
import math
from datetime import datetime, timezone

from flask import Flask, request, jsonify
from werkzeug.exceptions import MethodNotAllowed as RouteMethodNotAllowed

import forwarder
from errors import BadRequest, DomainRejected, InternalError, MethodNotAllowed, ProxyError

logger = logging.getLogger(__name__)

app = Flask(__name__)

REQUIRED_FIELDS = ("url", "data", "headers")


def iso_now():
    # 2024-01-01T00:00:00.000Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_missing(value):
    # JavaScript falsiness: {} and [] count as present.
    if value is None or value is False or value == "":
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or math.isnan(value)
    return False


def rejection(error):
    return jsonify({"code": error.code, "message": error.message, "data": None}), error.code


def failure(error):
    if isinstance(error, ProxyError):
        code, message = error.code, error.message
    else:
        code, message = InternalError.code, str(error) or InternalError.message
    body = {
        "code": code,
        "message": message,
        "data": None,
        "meta": {
            "error": type(error).__name__,
            "timestamp": iso_now(),
            "proxy": forwarder.PROXY_NAME,
        },
    }
    return jsonify(body), code


@app.before_request
def log_request():
    client = request.headers.get("X-Forwarded-For") or request.remote_addr
    logger.info("[%s] %s request from %s", iso_now(), request.method, client)


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@app.route('/', defaults={'path': ''}, methods=["POST", "OPTIONS"])
@app.route('/<path:path>', methods=["POST", "OPTIONS"])
def proxy(path):
    if request.method == "OPTIONS":
        logger.info("CORS preflight request handled")
        return "", 200

    try:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            body = {}
        url, data, headers = (body.get(field) for field in REQUIRED_FIELDS)

        if is_missing(url) or is_missing(data) or is_missing(headers):
            logger.info(
                "Missing required fields: url=%s data=%s headers=%s",
                not is_missing(url), not is_missing(data), not is_missing(headers),
            )
            return rejection(BadRequest())

        hostname = forwarder.hostname_of(url)
        if not forwarder.is_allowed(hostname):
            logger.info("Domain not allowed: %s", hostname)
            return rejection(DomainRejected(hostname))

        logger.info("Proxying request to: %s", url)
        status, response_data, elapsed_ms = forwarder.forward(url, data, headers)
        logger.info("Response received: %s in %sms", status, elapsed_ms)

        # Upstream status travels inside the envelope; the outer status is always 200.
        return jsonify({
            "code": status,
            "message": "Success" if status == 200 else "API Error",
            "data": response_data,
            "meta": {
                "responseTime": elapsed_ms,
                "timestamp": iso_now(),
                "proxy": forwarder.PROXY_NAME,
            },
        }), 200

    except ProxyError as e:
        logger.error("Proxy error: %s", e.message)
        return failure(e)
    except Exception as e:
        logger.exception("Proxy error: %s", e)
        return failure(e)


@app.errorhandler(RouteMethodNotAllowed)
def method_not_allowed(e):
    # Every method except POST and OPTIONS lands here.
    logger.info("Method %s not allowed", request.method)
    return rejection(MethodNotAllowed())


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run(port=5000)
