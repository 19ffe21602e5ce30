"""Tests pour l'extraction de palette (priorité, complétude, accent)."""

from pathlib import Path

import pytest

from tests.sync_samples import ALACRITTY_TOML, BTOP_THEME
from theme_sync.sync_exceptions import ExtractionError
from theme_sync.theme.sync_extractor import (
    REASON_INCOMPLETE,
    REASON_NOT_FOUND,
    REASON_PARSE_ERROR,
    SourceCandidate,
    SourceKind,
    build_theme_source,
    extract_from_candidates,
    extract_palette,
    resolve_theme_dir,
)

PRIORITY = ("alacritty.toml", "custom_theme.json", "btop.theme")


class TestSourceKind:
    """Tests pour SourceKind.for_path."""

    @pytest.mark.parametrize(
        ("name", "kind"),
        [
            ("alacritty.toml", SourceKind.NESTED_TABLE),
            ("custom_theme.json", SourceKind.GENERIC_OBJECT),
            ("btop.theme", SourceKind.KEY_VALUE),
            ("colors.conf", SourceKind.KEY_VALUE),
        ],
    )
    def test_kind_from_extension(self, name, kind):
        assert SourceKind.for_path(Path(name)) is kind

    def test_build_theme_source_keeps_order(self, tmp_path):
        candidates = build_theme_source(tmp_path, PRIORITY)
        assert [c.path.name for c in candidates] == list(PRIORITY)
        assert candidates[0] == SourceCandidate(tmp_path / "alacritty.toml", SourceKind.NESTED_TABLE)


class TestResolveThemeDir:
    """Résolution du lien racine."""

    def test_absolute_link(self, theme_tree):
        assert resolve_theme_dir(theme_tree) == theme_tree.resolve()

    def test_relative_link(self, tmp_path):
        (tmp_path / "themes" / "nord").mkdir(parents=True)
        link = tmp_path / "current"
        link.symlink_to(Path("themes") / "nord")
        assert resolve_theme_dir(link) == tmp_path / "themes" / "nord"

    def test_plain_directory(self, tmp_path):
        assert resolve_theme_dir(tmp_path) == tmp_path


class TestExtractPalette:
    """Tests pour extract_palette."""

    def test_extract_through_symlink(self, theme_tree):
        result = extract_palette(theme_tree, PRIORITY)
        assert result.source.path.name == "alacritty.toml"
        assert result.palette.background.hex == "#1a1b26"

    def test_accent_stays_in_green(self, theme_tree):
        """#8FECD5 (accent amont) reste dans green, cyan inchangé."""
        palette = extract_palette(theme_tree, PRIORITY).palette
        assert palette.green.hex == "#8FECD5"
        assert palette.cyan.hex == "#449dab"

    def test_priority_first_complete_wins(self, tmp_path):
        """Deux sources complètes: la première en priorité l'emporte."""
        (tmp_path / "alacritty.toml").write_text(ALACRITTY_TOML, encoding="utf-8")
        (tmp_path / "btop.theme").write_text(BTOP_THEME, encoding="utf-8")

        first = extract_palette(tmp_path, PRIORITY)
        second = extract_palette(tmp_path, ("btop.theme", "alacritty.toml"))

        assert first.source.path.name == "alacritty.toml"
        assert second.source.path.name == "btop.theme"
        assert first.palette.background.hex == "#1a1b26"
        assert second.palette.background.hex == "#000000"

    def test_priority_is_deterministic(self, tmp_path):
        (tmp_path / "alacritty.toml").write_text(ALACRITTY_TOML, encoding="utf-8")
        (tmp_path / "btop.theme").write_text(BTOP_THEME, encoding="utf-8")
        palettes = [extract_palette(tmp_path, PRIORITY).palette for _ in range(3)]
        assert palettes[0] == palettes[1] == palettes[2]

    def test_incomplete_source_falls_through(self, tmp_path):
        """Un fichier valide mais incomplet est rejeté, le suivant est utilisé."""
        (tmp_path / "alacritty.toml").write_text('[colors.primary]\nbackground = "#111111"\n', encoding="utf-8")
        (tmp_path / "btop.theme").write_text(BTOP_THEME, encoding="utf-8")

        result = extract_palette(tmp_path, PRIORITY)

        assert result.source.path.name == "btop.theme"

    def test_no_valid_source_lists_attempts(self, tmp_path):
        (tmp_path / "alacritty.toml").write_text('[colors.primary]\nbackground = "#111111"\n', encoding="utf-8")
        (tmp_path / "custom_theme.json").write_text("{broken", encoding="utf-8")

        with pytest.raises(ExtractionError) as exc_info:
            extract_palette(tmp_path, PRIORITY)

        attempts = exc_info.value.attempts
        assert [a.reason for a in attempts] == [REASON_INCOMPLETE, REASON_PARSE_ERROR, REASON_NOT_FOUND]
        assert "foreground" in attempts[0].detail
        assert "btop.theme" in str(exc_info.value)

    def test_empty_candidates(self):
        with pytest.raises(ExtractionError):
            extract_from_candidates([])
