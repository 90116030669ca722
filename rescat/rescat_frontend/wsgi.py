# wsgi.py
import importlib, os

from asgiref.wsgi import WsgiToAsgi
from flask import Flask

# Flask WSGI app of the catalogue front-end
APP_MODULE = os.getenv("APP_MODULE", "webapp.app:APP")
module_name, attr = APP_MODULE.split(":", 1)
module = importlib.import_module(module_name)
app = getattr(module, attr)

# Liveness probe for the hosting platform
if isinstance(app, Flask) and not any(r.rule == "/healthz" for r in app.url_map.iter_rules()):
    @app.route("/healthz")
    def _healthz():
        return "ok", 200

# WSGI -> ASGI so the front-end can run under Uvicorn next to the API
asgi_app = WsgiToAsgi(app)
