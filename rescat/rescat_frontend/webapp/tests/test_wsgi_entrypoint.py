from asgiref.wsgi import WsgiToAsgi

import wsgi

def test_wsgi_exposes_asgi_app_and_healthz():
    """
    Tests that the deployment entrypoint wraps the Flask app and adds a liveness probe.
    """
    assert isinstance(wsgi.asgi_app, WsgiToAsgi)
    with wsgi.app.test_client() as c:
        r = c.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"
