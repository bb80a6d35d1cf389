"""Access tokens for private remotes.

Tokens are never written to the config file. A repository's
``credential_ref`` names the environment variable that holds its token and
``GITHUB_TOKEN`` is used when the entry does not name one.
"""

from __future__ import annotations

import base64
import os
from typing import Optional

from rulem.constants import GITHUB_TOKEN_ENV


GITHUB_TOKEN_PREFIXES: tuple[str, ...] = ("ghp_", "github_pat_", "gho_", "ghu_", "ghs_", "ghr_")


def looks_like_github_token(token: str) -> bool:
    text = token.strip()
    return any(text.startswith(prefix) for prefix in GITHUB_TOKEN_PREFIXES) and len(text) >= 20


def resolve_token(credential_ref: Optional[str] = None) -> Optional[str]:
    name = credential_ref or GITHUB_TOKEN_ENV
    token = os.environ.get(name, "").strip()
    return token or None


def auth_environment(token: str) -> dict[str, str]:
    """Git config entries that attach ``token`` to HTTPS requests.

    The header travels through ``GIT_CONFIG_*`` variables so it is scoped to a
    single git process and never appears on its command line.
    """
    basic = base64.b64encode(f"x-access-token:{token}".encode("utf-8")).decode("ascii")
    return {
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": "http.extraHeader",
        "GIT_CONFIG_VALUE_0": f"Authorization: Basic {basic}",
    }
