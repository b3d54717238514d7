"""Best-effort detection of administrator accounts.

The remote API has shipped user records and token claims in many shapes over
time, so every check here is permissive and never raises on unexpected input.
None of this verifies a token signature: it only decides what the panel shows.
"""
from __future__ import annotations

import base64
import json
import logging
import math
import re
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

MAX_SCAN_DEPTH = 3
ADMIN_LEVEL_THRESHOLD = 7

USER_FLAG_KEYS = ("isAdmin", "admin", "is_admin", "isAdm", "adm", "superuser")
CLAIM_FLAG_KEYS = ("isAdmin", "admin", "is_admin")
CLAIM_ROLE_KEYS = (
    "role",
    "perfil",
    "permissao",
    "tipo",
    "tipoUsuario",
    "tipo_usuario",
    "papel",
    "grupo",
)
CLAIM_ROLE_LIST_KEYS = ("roles", "permissoes", "scopes")
CLAIM_LEVEL_KEYS = ("nivel", "nivelAcesso", "nivel_acesso", "accessLevel")

ADMIN_KEY_PATTERN = re.compile(
    r"(admin|adm|geren|manager|super|root|owner|acess|access|nivel|level|role|perfil|profile"
    r"|permiss|tipo|type|papel|grupo|group|cargo|func|depart|setor|cat)"
)
ADMIN_WORDS = ("admin", "administrator", "administrador", "adm")
ADMIN_FRAGMENTS = ("admin", "adm", "geren", "manager", "super", "root", "owner")


def to_str(value: Any) -> str:
    return "" if value is None else str(value).lower()


def truthy(value: Any) -> bool:
    """True for ``True``, ``1``, ``"true"``, ``"1"`` and ``"sim"`` (any case)."""
    if value is True:
        return True
    if isinstance(value, (int, float)) and value == 1:
        return True
    if isinstance(value, str):
        return value in ("true", "1") or value.lower() == "sim"
    return False


def adminish_word(text: str) -> bool:
    lowered = text.lower()
    if lowered in ADMIN_WORDS:
        return True
    return any(fragment in lowered for fragment in ADMIN_FRAGMENTS)


def has_admin_signal(value: Any, depth: int = 0, matched: bool = False) -> bool:
    """Scan ``value`` for anything that looks like an admin marker.

    Numbers >= 1 and ``True`` count wherever they appear. Strings only count
    under a key that looks like a role/level/permission field, or when the
    scan starts on a bare string.
    """
    if value is None or depth > MAX_SCAN_DEPTH:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return not math.isnan(value) and value >= 1
    if isinstance(value, str):
        return (matched or depth == 0) and adminish_word(value)
    if isinstance(value, (list, tuple)):
        return any(has_admin_signal(item, depth + 1, matched) for item in value)
    if isinstance(value, Mapping):
        for key, item in value.items():
            key_matched = ADMIN_KEY_PATTERN.search(to_str(key)) is not None
            if key_matched and (truthy(item) or (isinstance(item, str) and adminish_word(item))):
                return True
            if has_admin_signal(item, depth + 1, key_matched):
                return True
    return False


def is_admin_user(user: Any) -> bool:
    if not isinstance(user, Mapping) or not user:
        return False
    if any(truthy(user.get(key)) for key in USER_FLAG_KEYS):
        return True
    return has_admin_signal(user)


def _first_present(claims: Mapping, keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = claims.get(key)
        if value not in (None, False, "", 0, [], {}):
            return value
    return None


def _to_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip() or 0)
        except ValueError:
            return math.nan
    return math.nan


def _role_text(entry: Any) -> str:
    if isinstance(entry, str):
        return entry.lower()
    if isinstance(entry, Mapping):
        return to_str(entry.get("name") or entry.get("role"))
    return ""


def is_admin_from_claims(claims: Any) -> bool:
    if not isinstance(claims, Mapping) or not claims:
        return False
    if any(truthy(claims.get(key)) for key in CLAIM_FLAG_KEYS):
        return True

    role = to_str(_first_present(claims, CLAIM_ROLE_KEYS))
    if role in ("admin", "administrator") or any(
        fragment in role for fragment in ("adm", "geren", "super", "root")
    ):
        return True

    roles = _first_present(claims, CLAIM_ROLE_LIST_KEYS)
    if isinstance(roles, (list, tuple)) and any("adm" in _role_text(entry) for entry in roles):
        return True

    level = _to_number(_first_present(claims, CLAIM_LEVEL_KEYS))
    return not math.isnan(level) and level >= ADMIN_LEVEL_THRESHOLD


def decode_jwt_claims(token: Any) -> dict[str, Any] | None:
    """Decode the payload segment of a JWT without checking its signature."""
    if not isinstance(token, str) or not token:
        return None
    parts = token.split(".")
    if len(parts) < 2:
        return None
    segment = parts[1].replace("-", "+").replace("_", "/")
    segment += "=" * (-len(segment) % 4)
    try:
        claims = json.loads(base64.b64decode(segment, validate=True).decode("utf-8"))
    except (ValueError, RecursionError) as exc:
        logger.debug("Could not decode token payload: %s", exc)
        return None
    return claims if isinstance(claims, dict) else None


def validate_admin_access(user: Any, token: str | None = None) -> bool:
    if is_admin_user(user):
        return True
    if token:
        claims = decode_jwt_claims(token)
        if claims is not None and is_admin_from_claims(claims):
            return True
    return False
