"""Writing preference overrides to a profile's user.js."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

__all__ = [
    "USER_JS",
    "format_user_pref",
    "write_user_js",
]

USER_JS = "user.js"

_PREF_NAME = re.compile(r'^\s*user_pref\(\s*"([^"]+)"')


def format_user_pref(name: str, value: Any) -> str:
    """Render one user_pref() line.

    Example:
        format_user_pref("browser.cache.disk.enable", False)
        -> 'user_pref("browser.cache.disk.enable", false);'
    """
    return f"user_pref({json.dumps(name)}, {json.dumps(value)});"


def write_user_js(profile_dir: Path, prefs: Mapping[str, Any]) -> Path:
    """Set prefs in profile_dir/user.js.

    Existing lines that set other preferences are kept byte for byte, even
    when they are not valid UTF-8; lines for the given preferences are
    replaced.

    Returns:
        Path to the written user.js
    """
    user_js = profile_dir / USER_JS
    kept: list[str] = []
    if user_js.exists():
        for line in user_js.read_text(encoding="utf-8", errors="surrogateescape").splitlines():
            match = _PREF_NAME.match(line)
            if match and match.group(1) in prefs:
                continue
            kept.append(line)

    lines = kept + [format_user_pref(name, value) for name, value in prefs.items()]
    user_js.write_text("\n".join(lines) + "\n", encoding="utf-8", errors="surrogateescape")
    return user_js
