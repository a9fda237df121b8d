"""In-memory fixed-window rate limiter.

Counters live in the process: they are lost on restart and not shared between
workers. Good enough to stop brute force and upload spam on a single node.
"""
import math
import threading
import time
from functools import wraps

from flask import current_app, jsonify, request

CLEANUP_INTERVAL = 60.0

_store = {}
_lock = threading.Lock()
_last_cleanup = time.monotonic()


def _cleanup(now):
    global _last_cleanup
    if now - _last_cleanup < CLEANUP_INTERVAL:
        return
    _last_cleanup = now
    for key in [k for k, (_, reset_at) in _store.items() if now > reset_at]:
        del _store[key]


def check_rate_limit(identifier, max_requests, window_seconds, now=None):
    """Count one hit for `identifier`.

    Returns (allowed, remaining, reset_at) with reset_at on the monotonic clock.
    """
    now = time.monotonic() if now is None else now
    with _lock:
        _cleanup(now)
        entry = _store.get(identifier)
        if entry is None or now > entry[1]:
            reset_at = now + window_seconds
            _store[identifier] = [1, reset_at]
            return True, max_requests - 1, reset_at

        entry[0] += 1
        if entry[0] > max_requests:
            return False, 0, entry[1]
        return True, max_requests - entry[0], entry[1]


def reset_rate_limits():
    with _lock:
        _store.clear()


def get_client_ip():
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.headers.get('X-Real-IP') or request.remote_addr or 'unknown'


def rate_limit_response(reset_at):
    retry_after = max(0, math.ceil(reset_at - time.monotonic()))
    resp = jsonify({'error': 'Trop de requêtes. Réessayez dans quelques instants.'})
    resp.status_code = 429
    resp.headers['Retry-After'] = str(retry_after)
    return resp


def rate_limited(scope, max_requests, window_seconds=60):
    """Limit a view to `max_requests` per client IP per window."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if current_app.config.get('RATE_LIMIT_ENABLED', True):
                allowed, _, reset_at = check_rate_limit(f"{scope}:{get_client_ip()}", max_requests, window_seconds)
                if not allowed:
                    current_app.logger.warning('Rate limit hit: %s from %s', scope, get_client_ip())
                    return rate_limit_response(reset_at)
            return view(*args, **kwargs)
        return wrapped
    return decorator
