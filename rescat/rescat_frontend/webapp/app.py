# webapp/app.py
from __future__ import annotations
import os
from typing import Any, Dict, List
from flask import (
    Flask, render_template, request, redirect, url_for, flash
)
import requests

from rescat.filters import FILTER_CATEGORIES, format_language_name, format_type_name
from rescat.taxonomy import FAMILIES

APP = Flask(__name__)
APP.secret_key = os.environ.get("RESCAT_SECRET_KEY", "dev-secret")
API_BASE = os.environ.get("RESCAT_API_BASE", "http://127.0.0.1:8000").rstrip("/")
COLLECTIONS = os.environ.get("RESCAT_COLLECTION_KEYS", "F9DNTXQA,ZD2RV8H9,L72L5WAP")
TIMEOUT = (10, 60)  # (connect, read)
PER_PAGE = 24

# ---------------------- API helpers ----------------------
def _full(path: str) -> str:
    """Return absolute API URL for a given path using `API_BASE`."""
    return f"{API_BASE}{path}"

def api_get(path: str, **kwargs):
    """HTTP GET wrapper against the backend API; returns JSON when available.

    Raises RuntimeError on non-2xx responses.
    """
    r = requests.get(_full(path), timeout=TIMEOUT, **kwargs)
    if not r.ok:
        raise RuntimeError(f"GET {path} -> {r.status_code}: {r.text}")
    if "application/json" in r.headers.get("content-type", ""):
        return r.json()
    return r

def api_post(path: str, json_body: dict | None = None, **kwargs):
    """HTTP POST wrapper against the backend API; returns JSON when available.

    Raises RuntimeError on non-2xx responses.
    """
    r = requests.post(_full(path), json=json_body or {}, timeout=TIMEOUT, **kwargs)
    if not r.ok:
        raise RuntimeError(f"POST {path} -> {r.status_code}: {r.text}")
    if "application/json" in r.headers.get("content-type", ""):
        return r.json()
    return r

# ---------------------- Query helpers ----------------------
def selected_filters() -> Dict[str, List[str]]:
    """
    Checkbox selections from the query string, one list per filter category:
      ?sections=Part%201&types=book&types=film -> {"sections": ["Part 1"], "types": ["book", "film"], ...}
    """
    return {cat: [v for v in request.args.getlist(cat) if v] for cat in FILTER_CATEGORIES}

def list_params(filters: Dict[str, List[str]]) -> Dict[str, Any]:
    """Translate the page's query string into GET /resources parameters."""
    params: Dict[str, Any] = {
        "collection": request.args.get("collection") or COLLECTIONS,
        "page": request.args.get("page", 1, type=int),
        "perPage": PER_PAGE,
    }
    family = request.args.get("family")
    if family in FAMILIES:
        params["family"] = family
    q = (request.args.get("q") or "").strip()
    if q:
        params["q"] = q
    for cat, values in filters.items():
        if values:
            params[cat] = values  # repeated ?cat=a&cat=b, so values may contain commas
    return params

# ---------------------- Routes ----------------------
@APP.route("/")
def index():
    """Landing page: the catalogue lives under /resources."""
    return redirect(url_for("resources"))

@APP.route("/resources")
def resources():
    """Resource grid with search, family tabs and filter sidebar."""
    filters = selected_filters()
    params = list_params(filters)
    try:
        resp = api_get("/resources", params=params) or {}
    except Exception as e:
        resp = {}
        flash(f"Could not load resources: {e}", "error")

    meta = resp.get("meta") or {}
    return render_template(
        "resources.html",
        resources=resp.get("data") or [],
        meta=meta,
        facets=meta.get("facets") or {"sections": [], "types": [], "languages": []},
        families=FAMILIES,
        selected=filters,
        family=params.get("family"),
        q=params.get("q", ""),
        page=meta.get("page", 1),
        total_pages=meta.get("totalPages", 1),
        api_base=API_BASE,
    )

@APP.route("/resources/<item_id>")
def resource_detail(item_id: str):
    """Detail page of a single resource; a friendly not-found page when the API says 404."""
    try:
        data = api_get(f"/resources/{item_id}") or {}
    except Exception as e:
        if " -> 404" in str(e):
            return render_template("resource_detail.html", resource=None, item_id=item_id), 404
        flash(str(e), "error")
        return redirect(url_for("resources"))

    return render_template("resource_detail.html", resource=data.get("data") or {}, item_id=item_id)

@APP.route("/revalidate", methods=["POST"])
def revalidate():
    """Ask the API to drop its cached listings."""
    try:
        api_post("/revalidate")
        flash("Catalogue refreshed.", "success")
    except Exception as e:
        flash(str(e), "error")
    return redirect(request.referrer or url_for("resources"))

# ---- Jinja filters ----
@APP.template_filter("type_name")
def type_name(item_type):
    """bookSection -> Book Section"""
    return format_type_name(item_type)

@APP.template_filter("language_name")
def language_name(language):
    return format_language_name(language)

@APP.template_filter("join_parts")
def join_parts(parts):
    """Join collection names with ' · ' for display in templates."""
    if isinstance(parts, list):
        return " · ".join(p for p in parts if p)
    return parts or ""

# ---- Entrypoint ----
if __name__ == "__main__":
    APP.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=True)
