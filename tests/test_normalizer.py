"""Tests for text normalization."""

import pytest

from legaldocs.services.articles.normalizer import (
    canonicalize_keyword_line,
    normalize_lines,
    normalize_text,
)


class TestWhitespace:
    """Tests for whitespace cleanup."""

    def test_unifies_line_terminators(self):
        """CRLF and bare CR both become LF."""
        assert normalize_text("uno\r\ndos\rtres") == "uno\ndos\ntres"

    def test_tab_runs_become_a_single_space(self):
        """Tabs never glue words together."""
        assert normalize_text("6.1\t\tHormonales") == "6.1 Hormonales"

    def test_collapses_spaces(self):
        """Runs of spaces collapse to one."""
        assert normalize_text("Artículo    primero  del   texto") == "Artículo primero del texto"

    def test_strips_trailing_and_leading_whitespace(self):
        """Each line and the whole text are stripped."""
        assert normalize_text("  \n  hola   \n mundo  \n\n") == "hola\nmundo"

    def test_collapses_blank_line_runs(self):
        """Several blank lines in a row keep a single separator."""
        assert normalize_text("a\n\n\n\nb") == "a\n\nb"
        assert normalize_text("a\n \n  \n\nb") == "a\n\nb"

    def test_whitespace_only_lines_count_as_blank(self):
        """NBSP and form-feed lines from PDF extraction collapse like empty ones."""
        assert normalize_text("6 Objeto\ntexto\n \n \n\f\nmas texto") == "6 Objeto\ntexto\n\nmas texto"
        assert normalize_text("a\n\u00a0\n\u00a0\u00a0\n\nb") == "a\n\nb"
        assert normalize_lines("a\n\f\n\u00a0\nb") == ["a", "", "b"]

    def test_single_blank_line_is_kept(self):
        """One blank line between paragraphs survives."""
        assert normalize_text("a\n\nb") == "a\n\nb"

    def test_empty_input(self):
        """Empty or whitespace-only text normalizes to nothing."""
        assert normalize_text("") == ""
        assert normalize_text("   \n\t\n") == ""
        assert normalize_lines("") == []


class TestKeywords:
    """Tests for structural keyword canonicalization."""

    @pytest.mark.parametrize(
        "line,expected",
        [
            ("transitorios", "TRANSITORIO"),
            ("Transitoria", "TRANSITORIO"),
            ("TRANSITORIAS", "TRANSITORIO"),
            ("transitorios III", "TRANSITORIO III"),
            ("ARTÍCULOS TRANSITORIOS", "TRANSITORIO"),
            ("Disposiciones Transitorias", "TRANSITORIO"),
            ("anexo 1", "ANEXO 1"),
            ("A N E X O 1", "ANEXO 1"),
            ("ANEXO IV", "ANEXO IV"),
            ("Anexo 2b", "ANEXO 2B"),
            ("apendice", "APÉNDICE"),
            ("Apéndice A", "APÉNDICE A"),
            ("anexo ii", "ANEXO II"),
            ("transitorios iii", "TRANSITORIO III"),
            ("anexo b", "ANEXO B"),
            ("apéndice c", "APÉNDICE C"),
            ("anexo ii. Formatos", "ANEXO II. Formatos"),
            ("prefacio", "PREFACIO"),
            ("Considerando:", "CONSIDERANDO"),
            ("contenido", "CONTENIDO"),
            ("indice", "ÍNDICE"),
            ("Índice", "ÍNDICE"),
        ],
    )
    def test_headings_become_canonical_tokens(self, line, expected):
        """Heading lines map to fixed uppercase tokens."""
        assert canonicalize_keyword_line(line) == expected

    def test_heading_keeps_punctuated_title(self):
        """Text after a numbered heading is preserved."""
        assert canonicalize_keyword_line("anexo 3. Formatos de registro") == "ANEXO 3. Formatos de registro"

    def test_heading_keeps_uppercase_description(self):
        """An all-caps description still reads as a heading."""
        assert canonicalize_keyword_line("Anexo NORMATIVO") == "ANEXO NORMATIVO"

    @pytest.mark.parametrize(
        "line",
        [
            "El anexo 1 contiene los formatos.",
            "Anexo de la presente ley que se publica.",
            "Prefacio de la norma elaborada por el comité",
            "Considerando que la ley establece",
            "Los artículos transitorios de esta ley entrarán en vigor",
            "Anexo a la presente norma",
            "anexo y apéndice de la ley",
            "anexo ii contiene los formatos",
        ],
    )
    def test_keyword_inside_prose_is_untouched(self, line):
        """Only a keyword that dominates its line triggers."""
        assert canonicalize_keyword_line(line) == line

    def test_keywords_are_rewritten_per_line(self):
        """Each line is canonicalized on its own."""
        text = "prefacio\nEsta norma...\n\ntransitorios III\nSon aplicables..."
        assert normalize_lines(text) == [
            "PREFACIO",
            "Esta norma...",
            "",
            "TRANSITORIO III",
            "Son aplicables...",
        ]


class TestIdempotence:
    """Normalizing normalized text is a no-op."""

    @pytest.mark.parametrize(
        "raw",
        [
            "prefacio\r\nEsta norma...\r\n\r\n\r\ntransitorios III\nSon aplicables...\n\nanexo 1\nContiene...",
            "6\tMétodos\n6.1  Hormonales   orales\n\n\n\nANEXO I. Diagrama\n  A N E X O 2  \n",
            "Disposiciones Transitorias\nÚnico. Entra en vigor.\nÍNDICE\napéndice b",
            "6 Objeto\ntexto\n \n \n\f\nmas texto",
            "anexo ii\n\u00a0\n\u00a0\n\ftransitorios iii\n\x0b\nAnexo a la norma",
            "",
        ],
    )
    def test_second_pass_changes_nothing(self, raw):
        """normalize(normalize(x)) == normalize(x)."""
        once = normalize_text(raw)
        assert normalize_text(once) == once
