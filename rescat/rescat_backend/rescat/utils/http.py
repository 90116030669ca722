from __future__ import annotations
import requests
from typing import Optional, Dict, Any, Tuple

def http_get(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 15.0,
    session: Optional[requests.Session] = None,
) -> Tuple[int, str, Dict[str, str]]:
    """
    Single GET, no retry. Returns (status_code, text, response_headers).
    Header names in the returned dict are lower-cased.

    Transport errors (DNS, connect, timeout) propagate as requests.RequestException;
    callers decide how to wrap them.
    """
    if session is None:
        with requests.Session() as s:
            r = s.get(url, params=params, headers=headers, timeout=timeout)
    else:
        r = session.get(url, params=params, headers=headers, timeout=timeout)
    return r.status_code, r.text, {k.lower(): v for k, v in r.headers.items()}
