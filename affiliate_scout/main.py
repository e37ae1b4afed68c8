from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from collections import defaultdict, deque
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

from flask import Flask, current_app, jsonify, request

from . import __version__
from .config import RATE_LIMIT_PER_MINUTE, env_int
from .errors import ValidationError
from .models import SearchQuery
from .service import AffiliateSearchService, build_service, run_search

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("affiliate_scout")

START_TIME = time.time()
RATE_LIMIT_WINDOW_SEC = 60
SERVICE_NAME = "accesstrade-scraper"
QUERY_ALIASES = ("product_name", "query", "q", "_raw")

_rate_limit_lock = threading.Lock()
_rate_limit_hits: Dict[str, deque[float]] = defaultdict(deque)
_service_lock = threading.Lock()


def client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "unknown"


def is_rate_limited(ip: str, limit: int) -> bool:
    if limit <= 0:
        return False
    now = time.time()
    with _rate_limit_lock:
        window = _rate_limit_hits[ip]
        while window and (now - window[0]) > RATE_LIMIT_WINDOW_SEC:
            window.popleft()
        if len(window) >= limit:
            return True
        window.append(now)
    return False


def parse_body() -> Dict[str, Any]:
    """
    Accepts anything: JSON object, form-encoded pairs, or raw text used as the query.
    A body that cannot be read becomes an empty dict instead of a 400.
    """
    if request.form:
        return request.form.to_dict()
    payload = request.get_json(silent=True, force=True)
    if isinstance(payload, dict):
        return payload
    text = request.get_data(as_text=True).strip()
    if not text:
        return {}
    if "=" in text:
        return dict(parse_qsl(text, keep_blank_values=True))
    return {"_raw": text}


def query_from(params: Dict[str, Any]) -> SearchQuery:
    raw_name = next((params[key] for key in QUERY_ALIASES if params.get(key)), "")
    return SearchQuery.from_params(raw_name, params.get("min_price"), params.get("max_price"))


def get_service() -> AffiliateSearchService:
    with _service_lock:
        service = current_app.extensions.get("affiliate_scout")
        if service is None:
            service = build_service()
            current_app.extensions["affiliate_scout"] = service
            atexit.register(service.shutdown)
        return service


def create_app(service: Optional[AffiliateSearchService] = None, *, rate_limit: int = RATE_LIMIT_PER_MINUTE) -> Flask:
    app = Flask(__name__)
    if service is not None:
        app.extensions["affiliate_scout"] = service

    @app.after_request
    def add_security_headers(response):
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Cross-Origin-Resource-Policy", "same-site")
        return response

    @app.route("/")
    def index():
        return jsonify({"ok": True, "service": SERVICE_NAME, "version": 2})

    @app.route("/version")
    def version():
        return jsonify({"version": 2, "package": __version__, "ts": int(time.time() * 1000)})

    @app.route("/health")
    def health():
        return {
            "status": "ok",
            "uptime_sec": int(time.time() - START_TIME),
        }

    @app.route("/scrape", methods=["GET", "POST"])
    def scrape():
        params = request.args.to_dict() if request.method == "GET" else parse_body()
        query = query_from(params)
        if is_rate_limited(client_ip(), rate_limit):
            return jsonify({"error": "Rate limit exceeded. Try again shortly.", "results": []})
        try:
            query.validate()
        except ValidationError as exc:
            return jsonify({"error": str(exc), "results": []})
        return jsonify(run_search(get_service(), query))

    return app


app = create_app()


def main() -> None:
    host = os.getenv("APP_HOST", "0.0.0.0")
    port = env_int("PORT", 3020, min_value=1, max_value=65535)
    debug = os.getenv("APP_DEBUG", "0") == "1"
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    main()
