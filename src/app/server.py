"""
JSON API over the checklist aggregation engine (stdlib ``http.server``).

Routes (all require ``Authorization: Bearer <session token>``):
* GET    /api/checklist                      – enriched list
* GET    /api/checklist/summary              – header badge summary
* GET    /api/checklist/groups               – rows grouped by source design
* DELETE /api/checklist                      – clear everything
* POST   /api/checklist/clear-completed      – drop fully acquired rows
* GET    /api/checklist/designs/<id>         – {"in_list": bool}
* POST   /api/checklist/designs/<id>         – add a design's items
* DELETE /api/checklist/designs/<id>         – remove a design's contributions
* PUT    /api/checklist/items/<id>           – {"quantity_acquired": n}
* POST   /api/checklist/items/<id>/toggle    – complete <-> not acquired
* DELETE /api/checklist/items/<id>           – drop one row

Usage:
    python3 src/app/server.py
"""

from __future__ import annotations

import json
import logging
import re
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlparse

# Ensure repo root is on sys.path when running as `python3 src/app/server.py`
REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from core.errors import (  # noqa: E402
    DesignNotFoundError,
    ItemNotFoundError,
    UnauthorizedError,
)
from core.services.checklist_service import ChecklistService  # noqa: E402

logger = logging.getLogger(__name__)

_DESIGN_RE = re.compile(r"^/api/checklist/designs/([^/]+)$")
_ITEM_RE = re.compile(r"^/api/checklist/items/(\d+)$")
_TOGGLE_RE = re.compile(r"^/api/checklist/items/(\d+)/toggle$")


class BadRequest(Exception):
    pass


def _dump(model) -> dict:
    return model.model_dump(mode="json")


class Handler(BaseHTTPRequestHandler):
    # Injected by make_handler()
    service: ChecklistService
    sessions = None

    # ------------------------------ dispatch
    def do_GET(self):  # noqa: N802
        self._dispatch("GET")

    def do_POST(self):  # noqa: N802
        self._dispatch("POST")

    def do_PUT(self):  # noqa: N802
        self._dispatch("PUT")

    def do_DELETE(self):  # noqa: N802
        self._dispatch("DELETE")

    def _dispatch(self, method: str) -> None:
        path = urlparse(self.path).path.rstrip("/") or "/"
        if not path.startswith("/api/checklist"):
            return self._send_json(404, {"error": "Not Found"})
        try:
            user_id = self._user_id()
            status, payload = self._route(method, path, user_id)
            return self._send_json(status, payload)
        except UnauthorizedError as e:
            return self._send_json(401, {"error": str(e)})
        except (DesignNotFoundError, ItemNotFoundError) as e:
            return self._send_json(404, {"error": str(e)})
        except BadRequest as e:
            return self._send_json(400, {"error": str(e)})
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("%s %s failed", method, path)
            return self._send_json(500, {"error": str(e)})

    def _route(self, method: str, path: str, user_id: str):
        svc = self.service

        if path == "/api/checklist":
            if method == "GET":
                return 200, [_dump(i) for i in svc.get_list(user_id=user_id)]
            if method == "DELETE":
                return 200, _dump(svc.clear_all(user_id=user_id))

        if path == "/api/checklist/summary" and method == "GET":
            return 200, _dump(svc.get_summary(user_id=user_id))

        if path == "/api/checklist/groups" and method == "GET":
            return 200, [_dump(g) for g in svc.get_design_groups(user_id=user_id)]

        if path == "/api/checklist/clear-completed" and method == "POST":
            return 200, _dump(svc.clear_completed(user_id=user_id))

        m = _DESIGN_RE.match(path)
        if m:
            design_id = unquote(m.group(1))
            if method == "GET":
                return 200, {
                    "design_id": design_id,
                    "in_list": svc.is_design_in_list(user_id=user_id, design_id=design_id),
                }
            if method == "POST":
                result = svc.add_design(user_id=user_id, design_id=design_id)
                payload = _dump(result)
                payload.update(affected=result.affected, empty=result.empty)
                return 200, payload
            if method == "DELETE":
                return 200, _dump(svc.remove_design(user_id=user_id, design_id=design_id))

        m = _TOGGLE_RE.match(path)
        if m and method == "POST":
            return 200, _dump(svc.toggle_complete(user_id=user_id, item_id=int(m.group(1))))

        m = _ITEM_RE.match(path)
        if m:
            item_id = int(m.group(1))
            if method == "PUT":
                data = self._read_json()
                quantity = data.get("quantity_acquired", data.get("quantityAcquired"))
                if isinstance(quantity, bool) or not isinstance(quantity, int):
                    raise BadRequest("quantity_acquired (integer) is required")
                row = svc.set_acquired(user_id=user_id, item_id=item_id, quantity=quantity)
                return 200, _dump(row)
            if method == "DELETE":
                svc.remove_item(user_id=user_id, item_id=item_id)
                return 200, {"deleted": item_id}

        return 404, {"error": "Not Found"}

    # ------------------------------ auth
    def _user_id(self) -> str:
        header = self.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise UnauthorizedError("Unauthorized: Please log in")
        return self.sessions.resolve(token.strip())

    # ------------------------------ JSON helpers
    def _send_json(self, status: int, payload) -> None:
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _read_json(self) -> dict:
        try:
            length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            length = 0
        body = self.rfile.read(length) if length else b""
        if not body:
            return {}
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BadRequest("Request body is not valid JSON") from exc
        if not isinstance(data, dict):
            raise BadRequest("Request body must be a JSON object")
        return data

    def log_message(self, format, *args):  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)


def make_handler(service: ChecklistService, sessions) -> type[Handler]:
    """Bind a service and a session resolver to a fresh Handler subclass."""
    return type("BoundHandler", (Handler,), {"service": service, "sessions": sessions})


# --------------------------------------------------------------------------- bootstrap
def main():
    from app.di import get_checklist_service, get_session_resolver, prepare_database
    from app.logging_config import setup_logging
    from app.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)
    prepare_database(settings)

    handler = make_handler(get_checklist_service(settings), get_session_resolver(settings))
    httpd = ThreadingHTTPServer((settings.host, settings.port), handler)
    logger.info("Serving on http://%s:%d  – Ctrl+C to quit", settings.host, settings.port)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Stopping…")
    finally:
        httpd.server_close()


if __name__ == "__main__":
    main()
