from __future__ import annotations

import json
import logging
from typing import Any

from flask import Flask, Response

from .cache import StatusCache

log = logging.getLogger(__name__)

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def _json(payload: Any, status: int = 200) -> Response:
    return Response(json.dumps(payload, indent=4), status=status, content_type="application/json; charset=utf-8")


def create_app(cache: StatusCache) -> Flask:
    app = Flask(__name__)

    @app.after_request
    def allow_any_origin(resp: Response) -> Response:
        resp.headers["Access-Control-Allow-Origin"] = "*"
        return resp

    @app.get("/status")
    @app.get("/status/<path:_rest>")
    def status(_rest: str = "") -> Response:
        try:
            snapshot = cache.get()
        except Exception:
            log.exception("GET /status failed")
            return _json({"error": "probe_failed"}, status=500)
        if _rest == "details":
            return _json(snapshot.to_details())
        return _json(snapshot.to_payload())

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.route("/", defaults={"_path": ""}, methods=_ALL_METHODS)
    @app.route("/<path:_path>", methods=_ALL_METHODS)
    def fallback(_path: str) -> Response:
        return Response("OK. Try GET /status", content_type="text/plain; charset=utf-8")

    return app
