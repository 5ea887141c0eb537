from __future__ import annotations
import json
import logging
import os
from typing import Dict, Iterable, Optional, Protocol

import requests

from .security import digest_matches
from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def normalize_identity(identity: str) -> str:
    return (identity or "").strip().lower()


class Authenticator(Protocol):
    def sign_in(self, identity: str, secret: str) -> Optional[str]: ...


class AuthorizationPolicy(Protocol):
    def is_authorized(self, identity: str) -> bool: ...


class CredentialDirectory:
    """Identities and HMAC digests of their secrets, loaded from a JSON object
    ``{"analyst@corp.com": "<hex digest>", ...}``."""

    def __init__(self, digests: Dict[str, str], pepper: str):
        self._digests = {normalize_identity(k): v for k, v in digests.items()}
        self._pepper = pepper

    @classmethod
    def from_file(cls, path: str, pepper: str) -> "CredentialDirectory":
        if not os.path.isfile(path):
            logger.warning("Credentials file %s not found, nobody can sign in", path)
            return cls({}, pepper)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object of identity -> digest")
        return cls(data, pepper)

    def sign_in(self, identity: str, secret: str) -> Optional[str]:
        key = normalize_identity(identity)
        expected = self._digests.get(key)
        if expected is None or not digest_matches(self._pepper, secret or "", expected):
            logger.info("Sign-in failed for %r", key)
            return None
        logger.info("Signed in %s", key)
        return key


class HttpDirectory:
    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def sign_in(self, identity: str, secret: str) -> Optional[str]:
        key = normalize_identity(identity)
        try:
            resp = requests.post(self.base_url + "/sign-in",
                                 json={"identity": key, "secret": secret},
                                 timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Directory %s unreachable: %s", self.base_url, e)
            return None
        if resp.status_code >= 400:
            logger.info("Directory rejected %r: %s", key, resp.status_code)
            return None
        try:
            body = resp.json()
        except ValueError:
            body = {}
        return normalize_identity(body.get("identity") or key)


class AllowListPolicy:
    def __init__(self, admins: Iterable[str]):
        self._admins = frozenset(normalize_identity(a) for a in admins if a)

    def is_authorized(self, identity: str) -> bool:
        return normalize_identity(identity) in self._admins


def build_authenticator(s: Optional[Settings] = None) -> Authenticator:
    s = s or default_settings
    if s.directory_url:
        return HttpDirectory(s.directory_url, timeout=s.request_timeout_seconds)
    return CredentialDirectory.from_file(s.credentials_file, s.credentials_pepper)


def build_policy(s: Optional[Settings] = None) -> AllowListPolicy:
    s = s or default_settings
    return AllowListPolicy(s.admin_identities)
