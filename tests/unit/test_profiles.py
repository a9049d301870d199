"""Unit tests for default profile lookup in profiles.ini."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from ffram.models import OutcomeKind, ProfileNotFoundError
from ffram.profiles import (
    ProfileEntry,
    folder_size,
    parse_profiles_ini,
    parse_profiles_text,
    resolve_default_profile,
)


class TestParseProfilesText:
    """Selection of the default profile section."""

    def test_single_eligible_section(self) -> None:
        text = "[Profile0]\nName=default\nIsRelative=1\nPath=Profiles/x.default\nDefault=1\n"

        assert parse_profiles_text(text) == ProfileEntry(path="Profiles/x.default", is_relative=True)

    def test_empty_text_has_no_default(self) -> None:
        assert parse_profiles_text("") is None

    def test_section_without_default_is_skipped(self) -> None:
        text = "[Profile0]\nIsRelative=1\nPath=Profiles/x.default\n"

        assert parse_profiles_text(text) is None

    def test_section_without_path_is_skipped(self) -> None:
        text = "[Profile0]\nIsRelative=1\nDefault=1\n"

        assert parse_profiles_text(text) is None

    def test_empty_path_is_skipped(self) -> None:
        text = "[Profile0]\nIsRelative=1\nPath=\nDefault=1\n"

        assert parse_profiles_text(text) is None

    def test_absolute_profile_is_not_eligible(self) -> None:
        text = "[Profile0]\nIsRelative=0\nPath=/Users/me/profile\nDefault=1\n"

        assert parse_profiles_text(text) is None

    def test_missing_is_relative_means_relative(self) -> None:
        text = "[Profile0]\nPath=Profiles/x.default\nDefault=1\n"

        entry = parse_profiles_text(text)

        assert entry is not None
        assert entry.is_relative

    def test_non_profile_sections_are_ignored(self) -> None:
        text = (
            "[Install4F96D1932A9F858E]\nDefault=Profiles/install.default\nLocked=1\n\n"
            "[General]\nStartWithLastProfile=1\nVersion=2\n"
        )

        assert parse_profiles_text(text) is None

    def test_first_eligible_section_wins(self) -> None:
        text = (
            "[Profile1]\nIsRelative=1\nPath=Profiles/first\nDefault=1\n\n"
            "[Profile0]\nIsRelative=1\nPath=Profiles/second\nDefault=1\n"
        )

        entry = parse_profiles_text(text)

        assert entry is not None
        assert entry.path == "Profiles/first"

    def test_section_is_judged_at_next_header(self) -> None:
        """An ineligible section before the default one does not block it."""
        text = (
            "[Profile0]\nIsRelative=1\nPath=Profiles/other\n\n"
            "[Profile1]\nIsRelative=1\nPath=Profiles/default\nDefault=1\n"
        )

        entry = parse_profiles_text(text)

        assert entry is not None
        assert entry.path == "Profiles/default"

    def test_path_value_is_trimmed_and_lines_stripped(self) -> None:
        text = "  [Profile0]\n  Path=Profiles/x.default   \n  Default=1\n"

        entry = parse_profiles_text(text)

        assert entry is not None
        assert entry.path == "Profiles/x.default"

    def test_name_lines_do_not_affect_selection(self) -> None:
        text = "[Profile0]\nName=Path=/bogus\nPath=Profiles/x\nDefault=1\n"

        entry = parse_profiles_text(text)

        assert entry is not None
        assert entry.path == "Profiles/x"


class TestProfileEntry:
    def test_relative_path_resolves_against_root(self, tmp_path: Path) -> None:
        entry = ProfileEntry(path="Profiles/x.default")

        assert entry.resolve(tmp_path) == tmp_path / "Profiles" / "x.default"

    def test_absolute_path_is_used_as_is(self, tmp_path: Path) -> None:
        entry = ProfileEntry(path="/opt/profile", is_relative=False)

        assert entry.resolve(tmp_path) == Path("/opt/profile")


class TestParseProfilesIni:
    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        assert parse_profiles_ini(tmp_path / "profiles.ini") is None

    def test_reads_file(self, profiles_root: Path) -> None:
        entry = parse_profiles_ini(profiles_root / "profiles.ini")

        assert entry is not None
        assert entry.path == "Profiles/abcd1234.default-release"


class TestFolderSize:
    def test_sums_nested_files(self, tmp_path: Path) -> None:
        (tmp_path / "a").write_bytes(b"x" * 10)
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b").write_bytes(b"y" * 32)

        assert folder_size(tmp_path) == 42

    def test_empty_directory_is_zero(self, tmp_path: Path) -> None:
        assert folder_size(tmp_path) == 0

    def test_symlinks_are_not_followed(self, tmp_path: Path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "big").write_bytes(b"z" * 100_000)
        tree = tmp_path / "tree"
        tree.mkdir()
        os.symlink(outside, tree / "dirlink")
        os.symlink(outside / "big", tree / "filelink")

        size = folder_size(tree)

        assert size == os.lstat(tree / "dirlink").st_size + os.lstat(tree / "filelink").st_size
        assert size < 100_000

    def test_directory_link_removed_while_walking(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "a").write_bytes(b"x" * 10)
        os.symlink(tmp_path, tmp_path / "dirlink")
        real_lstat = os.lstat

        def lstat(path: str | os.PathLike[str], *args: object, **kwargs: object) -> os.stat_result:
            if os.fspath(path).endswith("dirlink"):
                raise FileNotFoundError(path)
            return real_lstat(path, *args, **kwargs)  # type: ignore[arg-type]

        monkeypatch.setattr(os, "lstat", lstat)

        assert folder_size(tmp_path) == 10


class TestResolveDefaultProfile:
    def test_returns_path_and_size(self, profiles_root: Path) -> None:
        path, size = resolve_default_profile(profiles_root)

        assert path == profiles_root / "Profiles" / "abcd1234.default-release"
        assert size == 4096 + 19

    def test_missing_ini_raises_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(ProfileNotFoundError, match="Cannot find default Firefox profile") as exc_info:
            resolve_default_profile(tmp_path)

        assert exc_info.value.kind is OutcomeKind.SOURCE_MISSING

    def test_no_eligible_section_raises_not_found(self, tmp_path: Path) -> None:
        (tmp_path / "profiles.ini").write_text("[General]\nVersion=2\n")

        with pytest.raises(ProfileNotFoundError):
            resolve_default_profile(tmp_path)

    def test_missing_profile_directory_raises_not_found(self, tmp_path: Path) -> None:
        (tmp_path / "profiles.ini").write_text("[Profile0]\nPath=Profiles/gone\nDefault=1\n")

        with pytest.raises(ProfileNotFoundError, match="does not exist"):
            resolve_default_profile(tmp_path)
