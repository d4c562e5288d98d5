# src/bot_core/diagnostics.py
"""
Text heuristics applied to adapter events.

- auth-plugin prompts in chat ("/register", "/login")
- kick reasons mapped to a likely cause
- network error codes mapped to operator guidance
- templated auto-replies to private messages
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Sequence, Tuple

AUTH_KEYWORDS = ("register", "login")
AUTH_NOTE = "Auth request detected! You may need to register or login."

# First match wins.
KICK_DIAGNOSES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (
        ("proxy", "vpn", "auth"),
        "Server may be blocking proxies, VPNs or requiring authentication",
    ),
    (
        ("timeout",),
        "Connection timed out - server might be overloaded or have high ping",
    ),
    (
        ("banned", "blacklisted"),
        "The username or IP might be banned on this server",
    ),
    (
        ("whitelist",),
        "This server uses a whitelist and the bot is not on it",
    ),
    (
        ("outdated", "version"),
        "The Minecraft version might be incorrect - try a different version",
    ),
)

ERROR_GUIDANCE = {
    "ECONNRESET": (
        "Connection was forcibly closed by the server. "
        "This might happen due to server anti-bot measures."
    ),
    "ETIMEDOUT": (
        "Connection timed out. Please check if the server is online and accessible."
    ),
    "ECONNREFUSED": (
        "Connection refused. The server may be offline or the port may be wrong."
    ),
}

UNKNOWN_SENDER = "Unknown"
FALLBACK_TEMPLATE = "Hi!"


def reason_text(reason: Any) -> str:
    """
    Flatten a kick reason to plain text.

    Servers send either a string or a chat component
    ({"text": ..., "extra": [...]} / {"translate": ...}).
    """
    if reason is None:
        return ""
    if isinstance(reason, str):
        return reason
    if isinstance(reason, Mapping):
        parts = [str(reason.get("text") or reason.get("translate") or "")]
        for extra in reason.get("extra") or []:
            parts.append(reason_text(extra))
        flat = "".join(parts)
        return flat or json.dumps(reason, ensure_ascii=False)
    return str(reason)


def detect_auth_prompt(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in AUTH_KEYWORDS)


def diagnose_kick(reason: str) -> Optional[str]:
    lowered = reason.lower()
    for keywords, diagnosis in KICK_DIAGNOSES:
        if any(k in lowered for k in keywords):
            return diagnosis
    return None


def error_guidance(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    return ERROR_GUIDANCE.get(code.upper())


def render_chat_reply(template: Optional[str], sender: Optional[str]) -> str:
    """Substitute `{player}` with the sender, or "Unknown" if there is none."""
    text = template or FALLBACK_TEMPLATE
    return text.replace("{player}", sender or UNKNOWN_SENDER)
