"""Locating the default Firefox profile from profiles.ini."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ffram.models import ProfileNotFoundError

__all__ = [
    "PROFILES_INI",
    "ProfileEntry",
    "folder_size",
    "parse_profiles_ini",
    "parse_profiles_text",
    "resolve_default_profile",
]

PROFILES_INI = "profiles.ini"


@dataclass(frozen=True)
class ProfileEntry:
    """A profile section from profiles.ini."""

    path: str
    is_relative: bool = True

    def resolve(self, root: Path) -> Path:
        """Absolute profile directory; relative paths are taken from root."""
        if self.is_relative:
            return root / self.path
        return Path(self.path)


@dataclass
class _Section:
    path: str | None = None
    is_default: bool = False
    is_relative: bool = True

    def eligible(self) -> ProfileEntry | None:
        if self.is_default and self.is_relative and self.path:
            return ProfileEntry(path=self.path, is_relative=True)
        return None


def parse_profiles_text(text: str) -> ProfileEntry | None:
    """Find the default profile in profiles.ini content.

    Only [Profile*] sections are considered. A section qualifies when it has
    Default=1, is relative (IsRelative=1 or no IsRelative line) and has a
    non-empty Path. Each section is judged as soon as the next header is
    seen, and the last one at end of input; the first qualifying section wins.

    Args:
        text: Raw profiles.ini content

    Returns:
        ProfileEntry for the default profile, or None if none qualifies
    """
    section: _Section | None = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("["):
            if section is not None and (entry := section.eligible()):
                return entry
            section = _Section() if line.startswith("[Profile") else None
        elif section is None:
            continue
        elif line.startswith("Name="):
            continue
        elif line.startswith("IsRelative="):
            section.is_relative = line == "IsRelative=1"
        elif line.startswith("Path="):
            section.path = line[len("Path=") :].strip()
        elif line.startswith("Default=1"):
            section.is_default = True

    if section is not None:
        return section.eligible()
    return None


def parse_profiles_ini(ini_path: Path) -> ProfileEntry | None:
    """Read profiles.ini and return its default profile entry.

    Returns None if the file is missing or unreadable.
    """
    try:
        text = ini_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    return parse_profiles_text(text)


def folder_size(path: Path) -> int:
    """Total size in bytes of all non-directory entries below path.

    Symlinks are counted by their own size, not followed.
    """
    total = 0
    for dirpath, dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                total += os.lstat(os.path.join(dirpath, name)).st_size
            except FileNotFoundError:
                continue  # Removed while walking
        # os.walk lists symlinks to directories under dirnames without descending
        for name in dirnames:
            full = os.path.join(dirpath, name)
            if os.path.islink(full):
                try:
                    total += os.lstat(full).st_size
                except FileNotFoundError:
                    continue
    return total


def resolve_default_profile(profiles_root: Path) -> tuple[Path, int]:
    """Locate the default profile directory and measure it.

    Args:
        profiles_root: Directory holding profiles.ini

    Returns:
        Tuple of (absolute profile directory, size in bytes)

    Raises:
        ProfileNotFoundError: If no default profile is configured or the
            profile directory does not exist
    """
    ini_path = profiles_root / PROFILES_INI
    entry = parse_profiles_ini(ini_path)
    if entry is None:
        raise ProfileNotFoundError(f"Cannot find default Firefox profile in {ini_path}")

    profile_path = entry.resolve(profiles_root)
    if not profile_path.is_dir():
        raise ProfileNotFoundError(f"Firefox profile source does not exist: {profile_path}")

    return profile_path, folder_size(profile_path)
