"""
Admin authentication for Radio Now Playing

The diagnostic endpoints that cost money (Tier 3 audio detection) or
overwrite station records (forced ads, manual updates) can be protected
with HTTP Basic auth. Credentials live in a small JSON file created with
`--set-auth`; without that file every endpoint is open.

Repeated bad passwords from one client address lock that address out for
a few minutes.
"""

import os
import json
import time
import logging
import threading
from datetime import datetime
from functools import wraps

import bcrypt
from flask import request, Response
from flask_httpauth import HTTPBasicAuth

logger = logging.getLogger(__name__)

AUTH_FILE = 'radio_nowplaying_auth.json'
MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_SECONDS = 300
REALM = 'Radio Now Playing Admin'

auth = HTTPBasicAuth(realm=REALM)


class LoginThrottle:
    """Failed-login counter per client address

    Args:
        max_attempts: Failures allowed before the address is locked
        lockout_seconds: Length of a lockout
        clock: Monotonic time source
    """

    def __init__(self, max_attempts=MAX_LOGIN_ATTEMPTS, lockout_seconds=LOCKOUT_SECONDS,
                 clock=time.monotonic):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.clock = clock
        self._failures = {}  # address -> [count, locked_until or None]
        self._lock = threading.Lock()

    def seconds_locked(self, address):
        """Seconds left on an address's lockout (0 when not locked)"""
        with self._lock:
            entry = self._failures.get(address)
            if not entry or entry[1] is None:
                return 0
            remaining = entry[1] - self.clock()
            if remaining <= 0:
                del self._failures[address]
                return 0
            return remaining

    def is_locked(self, address):
        return self.seconds_locked(address) > 0

    def record_failure(self, address):
        """Count a failed login

        Returns:
            True if the address is now locked out
        """
        with self._lock:
            entry = self._failures.setdefault(address, [0, None])
            entry[0] += 1
            if entry[0] < self.max_attempts:
                logger.warning(f"Failed admin login from {address} ({entry[0]}/{self.max_attempts})")
                return False
            entry[1] = self.clock() + self.lockout_seconds

        logger.warning(f"Admin login locked for {address} for {self.lockout_seconds}s "
                       f"after {self.max_attempts} failed attempts")
        return True

    def reset(self, address):
        with self._lock:
            self._failures.pop(address, None)

    def clear(self):
        with self._lock:
            self._failures.clear()

    def failures(self, address):
        with self._lock:
            entry = self._failures.get(address)
            return entry[0] if entry else 0


throttle = LoginThrottle()


# ==================== CREDENTIALS FILE ====================

def is_auth_enabled():
    """Admin auth is on exactly when the credentials file exists"""
    return os.path.exists(AUTH_FILE)


def load_auth_config():
    """Read the credentials file

    Returns:
        dict with 'username' and 'password_hash', or None if missing/unreadable
    """
    if not is_auth_enabled():
        return None

    try:
        with open(AUTH_FILE, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read {AUTH_FILE}: {e}")
        return None

    if not isinstance(config, dict) or not config.get('username') or not config.get('password_hash'):
        logger.error(f"{AUTH_FILE} is missing username or password_hash")
        return None
    return config


def save_auth_config(username, password_hash):
    """Write the credentials file (enables admin auth)

    Returns:
        True if written
    """
    config = {
        'username': username,
        'password_hash': password_hash,
        'created_at': datetime.now().isoformat(),
    }

    try:
        with open(AUTH_FILE, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2)
    except OSError as e:
        logger.error(f"Could not write {AUTH_FILE}: {e}")
        return False

    logger.info(f"Admin authentication enabled for {username}")
    return True


def disable_auth():
    """Delete the credentials file

    Returns:
        True if a file was removed
    """
    if not is_auth_enabled():
        return False
    os.remove(AUTH_FILE)
    logger.info(f"Admin authentication disabled ({AUTH_FILE} removed)")
    return True


def hash_password(password):
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password, hashed):
    """Check a password against a bcrypt hash (malformed hashes never match)"""
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError as e:
        logger.error(f"Stored admin password hash is invalid: {e}")
        return False


# ==================== FLASK-HTTPAUTH HOOKS ====================

@auth.verify_password
def verify_auth(username, password):
    """Return the username for valid credentials, None otherwise"""
    if not username and not password:
        # No Authorization header: challenge without counting a failure
        return None

    address = request.remote_addr
    if throttle.is_locked(address):
        logger.warning(f"Rejected admin login from locked address {address}")
        return None

    config = load_auth_config()
    if config is None:
        # Credentials file removed or unreadable while running
        return None

    if username == config['username'] and verify_password(password, config['password_hash']):
        throttle.reset(address)
        return username

    throttle.record_failure(address)
    return None


@auth.error_handler
def auth_error(status):
    remaining = throttle.seconds_locked(request.remote_addr)
    if remaining:
        message = f'Too many failed logins. Try again in {int(remaining) + 1} seconds.'
    else:
        message = f'Admin credentials required. Delete {AUTH_FILE} to reset them.'
    return Response(message, status, {'WWW-Authenticate': f'Basic realm="{REALM}"'})


def requires_auth(f):
    """Protect an admin route once the credentials file exists"""
    protected = auth.login_required(f)

    @wraps(f)
    def decorated(*args, **kwargs):
        if is_auth_enabled():
            return protected(*args, **kwargs)
        return f(*args, **kwargs)

    return decorated
